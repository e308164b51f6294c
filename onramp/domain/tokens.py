import re
from dataclasses import dataclass
from typing import Dict, Optional

WALLET_ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{64}$")


@dataclass(frozen=True)
class Token:
    """A purchasable asset and how it is priced and delivered."""
    symbol: str
    coingecko_id: str
    decimals: int
    contract_address: str
    seed_price_minor: int  # development fallback price in kobo

    @property
    def unit_scaling_factor(self) -> int:
        return 10 ** self.decimals


SUPPORTED_TOKENS: Dict[str, Token] = {
    "BTC": Token(
        symbol="BTC",
        coingecko_id="bitcoin",
        decimals=8,
        contract_address="0x03fe2b97c1fd336e750087d68b9b867997fd64a2661ff3ca5a7c771641e8e7ac",
        seed_price_minor=9_542_000_000,
    ),
    "ETH": Token(
        symbol="ETH",
        coingecko_id="ethereum",
        decimals=18,
        contract_address="0x049d36570d4e46f48e99674bd3fcc84644ddd6b96f7c741b1562b82f9e004dc7",
        seed_price_minor=528_000_000,
    ),
    "USDC": Token(
        symbol="USDC",
        coingecko_id="usd-coin",
        decimals=6,
        contract_address="0x053c91253bc9682c04929ca02ed00b3e423f6710d2ee7e0d5ebb06f3ecf368a8",
        seed_price_minor=165_000,
    ),
    "STRK": Token(
        symbol="STRK",
        coingecko_id="starknet",
        decimals=18,
        contract_address="0x04718f5a0fc34cc1af16a1cdee98ffb20c31f5cd61d6ab07201858f4287c938d",
        seed_price_minor=120_000,
    ),
}


def get_token(symbol: str) -> Optional[Token]:
    return SUPPORTED_TOKENS.get(symbol)


def is_valid_wallet_address(address) -> bool:
    return isinstance(address, str) and bool(WALLET_ADDRESS_PATTERN.fullmatch(address))
