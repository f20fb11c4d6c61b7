"""Unit tests for candidate route enumeration and route validation."""

import pytest

from arbopt.routing import Hop, Route, generate_routes
from tests.helpers import DAI, UNI, USDC, USDT, WETH

INTERMEDIATES = (WETH, USDC, DAI, USDT)


class TestGenerateRoutes:
    def test_direct_routes_first_in_venue_order(self):
        routes = generate_routes(WETH, USDC, ["v1", "v2"], INTERMEDIATES, max_hops=2)

        assert [r.venue_ids for r in routes[:2]] == [["v1"], ["v2"]]
        assert all(len(r) == 1 for r in routes[:2])

    def test_two_hop_count_and_order(self):
        """Endpoints are excluded from intermediates: DAI and USDT remain."""
        routes = generate_routes(WETH, USDC, ["v1", "v2"], INTERMEDIATES, max_hops=2)

        # 2 direct + 2 intermediates * 2^2 venue assignments
        assert len(routes) == 10
        assert routes[2].path == [WETH, DAI, USDC]
        assert routes[2].venue_ids == ["v1", "v1"]
        assert routes[3].venue_ids == ["v1", "v2"]
        assert routes[6].path == [WETH, USDT, USDC]

    def test_three_hops_use_distinct_intermediates(self):
        routes = generate_routes(WETH, USDC, ["v1", "v2"], INTERMEDIATES, max_hops=3)

        three_hop = [r for r in routes if len(r) == 3]
        # 2 ordered picks of 2 intermediates * 2^3 venue assignments
        assert len(three_hop) == 16
        assert len(routes) == 26
        assert three_hop[0].path == [WETH, DAI, USDT, USDC]
        for route in three_hop:
            middle = route.path[1:-1]
            assert len(set(middle)) == len(middle)

    def test_hop_count_capped_at_four(self):
        routes = generate_routes(WETH, USDC, ["v1"], (DAI, USDT, UNI), max_hops=10)

        assert max(len(r) for r in routes) == 4
        # 1 direct + 3 two-hop + 6 three-hop + 6 four-hop
        assert len(routes) == 16

    def test_hop_counts_non_decreasing(self):
        routes = generate_routes(WETH, USDC, ["v1", "v2"], INTERMEDIATES, max_hops=3)
        lengths = [len(r) for r in routes]
        assert lengths == sorted(lengths)

    def test_duplicate_intermediates_collapsed(self):
        routes = generate_routes(WETH, USDC, ["v1"], (DAI, DAI.upper().replace("0X", "0x")), 2)
        assert len(routes) == 2

    def test_addresses_normalized(self):
        routes = generate_routes(WETH.upper().replace("0X", "0x"), USDC, ["v1"], (), 1)
        assert routes[0].token_in == WETH

    @pytest.mark.parametrize(
        ("token_a", "token_b"),
        [
            ("not-an-address", USDC),
            (WETH, "0x1234"),
            (WETH, WETH),
        ],
    )
    def test_invalid_or_identical_tokens(self, token_a, token_b):
        assert generate_routes(token_a, token_b, ["v1"], INTERMEDIATES, 3) == []

    def test_no_venues(self):
        assert generate_routes(WETH, USDC, [], INTERMEDIATES, 3) == []

    def test_non_positive_hop_limit(self):
        assert generate_routes(WETH, USDC, ["v1"], INTERMEDIATES, 0) == []

    def test_single_hop_limit_ignores_intermediates(self):
        routes = generate_routes(WETH, USDC, ["v1", "v2"], INTERMEDIATES, 1)
        assert len(routes) == 2
        assert not any(r.is_multihop for r in routes)


class TestRoute:
    def test_path_and_endpoints(self):
        route = Route((Hop(WETH, DAI, "v1"), Hop(DAI, USDC, "v2")))

        assert route.token_in == WETH
        assert route.token_out == USDC
        assert route.path == [WETH, DAI, USDC]
        assert route.venue_ids == ["v1", "v2"]
        assert route.is_multihop is True

    def test_broken_chain_rejected(self):
        with pytest.raises(ValueError, match="Broken route"):
            Route((Hop(WETH, DAI, "v1"), Hop(USDT, USDC, "v1")))

    def test_empty_route_rejected(self):
        with pytest.raises(ValueError, match="hops"):
            Route(())

    def test_five_hops_rejected(self):
        tokens = [WETH, DAI, USDT, UNI, USDC, WETH]
        hops = tuple(Hop(tokens[i], tokens[i + 1], "v1") for i in range(5))
        with pytest.raises(ValueError, match="hops"):
            Route(hops)
