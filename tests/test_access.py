"""Tests for wizard routing and the part 4 access gate."""

from __future__ import annotations

import pytest

from token_wallet.services.access import Part4ValidationService, PartValidationService
from token_wallet.services.route import ROUTES, RouteService, route_for_part


def _gate(part2: bool, part3: bool):
    route_service = RouteService()
    route_service.navigate("/part3")
    gate = Part4ValidationService(
        PartValidationService(2, part2),
        PartValidationService(3, part3),
        route_service,
    )
    return gate, route_service


class TestPart4ValidationService:
    """can_activate() truth table and redirect."""

    @pytest.mark.parametrize(
        "part2, part3, expected",
        [(True, True, True), (True, False, False), (False, True, False), (False, False, False)],
    )
    def test_requires_parts_2_and_3(self, part2, part3, expected) -> None:
        gate, _ = _gate(part2, part3)
        assert gate.can_activate(redirect_on_false=False) is expected

    def test_denial_redirects_to_part1(self) -> None:
        """By default a denied check sends the user back to the start."""
        gate, route_service = _gate(True, False)

        assert gate.can_activate() is False
        assert route_service.current_route == ROUTES[1]

    def test_denial_without_redirect_stays(self) -> None:
        gate, route_service = _gate(False, False)

        gate.can_activate(redirect_on_false=False)

        assert route_service.current_route == "/part3"

    def test_allowed_does_not_navigate(self) -> None:
        gate, route_service = _gate(True, True)

        gate.can_activate()

        assert route_service.history == [ROUTES[1], "/part3"]

    def test_flags_are_read_live(self) -> None:
        """The gate owns no state; it reads the validators on every call."""
        part2 = PartValidationService(2)
        part3 = PartValidationService(3, True)
        gate = Part4ValidationService(part2, part3, RouteService())

        assert gate.can_activate(redirect_on_false=False) is False
        part2.mark_complete()
        assert gate.can_activate(redirect_on_false=False) is True
        part3.reset()
        assert gate.can_activate(redirect_on_false=False) is False


class TestRouteService:
    """Navigation bookkeeping."""

    def test_navigate_records_history(self) -> None:
        route_service = RouteService()

        route_service.navigate_to_part(2)
        route_service.navigate_to_part1()

        assert route_service.current_route == "/part1"
        assert route_service.history == ["/part1", "/part2", "/part1"]

    def test_unknown_part(self) -> None:
        with pytest.raises(KeyError):
            route_for_part(7)
