"""User display preferences stored alongside scan state."""

from src.services.state.kv import KeyValueStore


CURRENCY_KEY = "@ArthMitra:currency"
DEFAULT_CURRENCY_SYMBOL = "₹"


class UserPreferences:
    """Currency symbol used when talking about money to the user."""

    def __init__(self, kv: KeyValueStore):
        self._kv = kv

    async def get_currency_symbol(self) -> str:
        return await self._kv.get_item(CURRENCY_KEY) or DEFAULT_CURRENCY_SYMBOL

    async def set_currency_symbol(self, symbol: str) -> None:
        await self._kv.set_item(CURRENCY_KEY, symbol.strip() or DEFAULT_CURRENCY_SYMBOL)
