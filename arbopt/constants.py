"""Well-known tokens and gas parameters for the arbitrage optimizer.

Centralizes addresses and default numeric parameters shared by components.
"""

from arbopt.models.types import is_valid_address


def _validate_token_address(name: str, address: str) -> str:
    """Validate and return a token address.

    Args:
        name: Name of the token (for error messages)
        address: The address to validate

    Returns:
        The validated address

    Raises:
        ValueError: If the address is invalid
    """
    if not is_valid_address(address):
        raise ValueError(f"Invalid {name} address: {address} (must be 0x + 40 hex chars)")
    return address


# Well-known token addresses on mainnet (lowercase for consistency)
# All addresses are validated at import time to catch typos early
WETH = _validate_token_address("WETH", "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2")
USDC = _validate_token_address("USDC", "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48")
USDT = _validate_token_address("USDT", "0xdac17f958d2ee523a2206206994597c13d831ec7")
DAI = _validate_token_address("DAI", "0x6b175474e89094c44da98b954eedeac495271d0f")
WBTC = _validate_token_address("WBTC", "0x2260fac5e5542a773aa44fbcfedf7c193bc2c599")
LINK = _validate_token_address("LINK", "0x514910771af9ca656af840dff83e8264ecf986ca")

# Tokens used as intermediates when expanding multi-hop routes, in priority order
DEFAULT_INTERMEDIATE_TOKENS: tuple[str, ...] = (WETH, USDC, USDT, DAI, WBTC, LINK)

# Hard ceiling on route length regardless of caller options
MAX_ROUTE_HOPS = 4

# 1 gwei expressed in native units
GWEI = 1e-9

# Average block time on mainnet, used for timing recommendations
BLOCK_TIME_SECONDS = 12.0
