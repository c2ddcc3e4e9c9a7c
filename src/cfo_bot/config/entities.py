"""The fixed set of legal entities the bot reports on."""

from dataclasses import dataclass

from cfo_bot.config.settings import FlatSettings, get_settings


@dataclass(frozen=True)
class Entity:
    """A legal entity with its own Zoho Books organization and currency."""

    code: str
    name: str
    org_id: str
    currency_symbol: str
    api_base_url: str
    thousands_separator: str = ","
    decimal_places: int = 0


def get_entities(settings: FlatSettings | None = None) -> tuple[Entity, ...]:
    """Build the configured entities in reporting order (KK first, then PT)."""
    settings = settings or get_settings()
    return (
        Entity(
            code="KK",
            name="UL KK (Japan)",
            org_id=settings.org_id_kk,
            currency_symbol="¥",
            api_base_url=settings.zoho_books_api_url_jp,
        ),
        Entity(
            code="PT",
            name="UL PT (Indonesia)",
            org_id=settings.org_id_pt,
            currency_symbol="Rp ",
            api_base_url=settings.zoho_books_api_url,
            thousands_separator=".",
        ),
    )
