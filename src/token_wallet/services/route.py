"""Navigation between the steps of the setup wizard."""

from __future__ import annotations

import logging

logger = logging.getLogger("token_wallet.services.route")

ROUTES: dict[int, str] = {
    1: "/part1",
    2: "/part2",
    3: "/part3",
    4: "/part4",
}


def route_for_part(part: int) -> str:
    """Return the route of a wizard part. Raises ``KeyError`` if unknown."""
    if part not in ROUTES:
        raise KeyError(f"Unknown part {part}. Available: {sorted(ROUTES)}")
    return ROUTES[part]


class RouteService:
    """Tracks the current wizard route and performs navigation."""

    def __init__(self, start: str = ROUTES[1]) -> None:
        self.current_route = start
        self.history: list[str] = [start]

    def navigate(self, route: str) -> None:
        logger.info(f"Navigating {self.current_route} -> {route}")
        self.current_route = route
        self.history.append(route)

    def navigate_to_part(self, part: int) -> None:
        self.navigate(route_for_part(part))

    def navigate_to_part1(self) -> None:
        self.navigate(ROUTES[1])
