"""Route search configuration."""

from dataclasses import dataclass

from arbopt.constants import DEFAULT_INTERMEDIATE_TOKENS


@dataclass(frozen=True)
class RoutingConfig:
    """Limits and pricing assumptions for route search.

    Attributes:
        max_hops: Default hop limit when options do not give one (default: 3)
        min_liquidity: Minimum quoted liquidity for every hop (default: 10,000)
        max_slippage: Maximum accumulated slippage as a fraction (default: 0.01)
        max_gas_ratio: Maximum gas cost / trade value (default: 0.01)
        cache_ttl_seconds: Lifetime of cached optimal routes (default: 30)
        cache_max_size: Cached route count that triggers a sweep (default: 1000)
        quote_timeout_seconds: Bound on each quote and fee lookup (default: 2)
        max_concurrent_evaluations: Routes evaluated at once (default: 32)
        native_token_price_usd: Price used to value gas in USD (default: 2000)
        default_token_price_usd: Token price used when options omit one (default: 2000)
        fallback_gas_cost_native: Route gas cost when the gas price lookup
            fails, in native units (default: 0.01)
        intermediate_tokens: Tokens tried as intermediates, in order
    """

    max_hops: int = 3
    min_liquidity: float = 10_000.0
    max_slippage: float = 0.01
    max_gas_ratio: float = 0.01

    # Caching
    cache_ttl_seconds: float = 30.0
    cache_max_size: int = 1000

    # External calls
    quote_timeout_seconds: float = 2.0
    max_concurrent_evaluations: int = 32

    # Pricing
    native_token_price_usd: float = 2000.0
    default_token_price_usd: float = 2000.0
    fallback_gas_cost_native: float = 0.01

    intermediate_tokens: tuple[str, ...] = DEFAULT_INTERMEDIATE_TOKENS


@dataclass(frozen=True)
class RouteOptions:
    """Per-call overrides for route search. Hashable, so part of the cache key.

    Attributes:
        max_hops: Hop limit for this search (capped at 4)
        input_price_usd: USD price of the input token
        output_price_usd: USD price of the output token
    """

    max_hops: int | None = None
    input_price_usd: float | None = None
    output_price_usd: float | None = None


# Default configuration instance
DEFAULT_ROUTING_CONFIG = RoutingConfig()
