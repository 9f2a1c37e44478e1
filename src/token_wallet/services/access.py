"""Access checks for the setup wizard.

Each wizard part owns a :class:`PartValidationService` whose ``part_complete``
flag says whether the user finished it. A later part may only be entered when
the parts it depends on are complete; otherwise the user is sent back to the
start of the wizard.
"""

from __future__ import annotations

import logging

from token_wallet.services.route import RouteService

logger = logging.getLogger("token_wallet.services.access")


class PartValidationService:
    """Completion flag for one wizard part."""

    def __init__(self, part: int, part_complete: bool = False) -> None:
        self.part = part
        self.part_complete = part_complete

    def mark_complete(self) -> None:
        self.part_complete = True

    def reset(self) -> None:
        self.part_complete = False


class Part4ValidationService:
    """Guards part 4: parts 2 and 3 must both be complete."""

    def __init__(
        self,
        part2_validation_service: PartValidationService,
        part3_validation_service: PartValidationService,
        route_service: RouteService,
    ) -> None:
        self._part2_validation_service = part2_validation_service
        self._part3_validation_service = part3_validation_service
        self._route_service = route_service

    def can_activate(self, redirect_on_false: bool = True) -> bool:
        """Return whether part 4 may be entered.

        When it may not and *redirect_on_false* is set, navigate back to
        part 1 before returning.
        """
        can_activate = (
            self._part2_validation_service.part_complete
            and self._part3_validation_service.part_complete
        )
        if not can_activate:
            logger.info("Part 4 is locked until parts 2 and 3 are complete")
            if redirect_on_false:
                self._route_service.navigate_to_part1()
        return can_activate
