"""Popular coins and ticker aliases for CoinGecko ids."""

POPULAR_COINS: list[dict[str, str]] = [
    {"id": "bitcoin", "symbol": "BTC", "name": "Bitcoin"},
    {"id": "ethereum", "symbol": "ETH", "name": "Ethereum"},
    {"id": "solana", "symbol": "SOL", "name": "Solana"},
    {"id": "dogecoin", "symbol": "DOGE", "name": "Dogecoin"},
    {"id": "pepe", "symbol": "PEPE", "name": "Pepe"},
    {"id": "ripple", "symbol": "XRP", "name": "XRP"},
    {"id": "binancecoin", "symbol": "BNB", "name": "BNB"},
    {"id": "cardano", "symbol": "ADA", "name": "Cardano"},
    {"id": "avalanche-2", "symbol": "AVAX", "name": "Avalanche"},
    {"id": "chainlink", "symbol": "LINK", "name": "Chainlink"},
]

COIN_ALIASES: dict[str, str] = {
    "btc": "bitcoin",
    "eth": "ethereum",
    "sol": "solana",
    "doge": "dogecoin",
    "xrp": "ripple",
    "pepe": "pepe",
    "bnb": "binancecoin",
    "ada": "cardano",
    "avax": "avalanche-2",
    "link": "chainlink",
    "matic": "matic-network",
}


def resolve_coin_id(term: str) -> str:
    """Map a search term or ticker to a CoinGecko coin id.

    Terms are trimmed and lower-cased; unknown terms are returned as-is so
    any valid CoinGecko id still works.
    """
    key = term.strip().lower()
    return COIN_ALIASES.get(key, key)
