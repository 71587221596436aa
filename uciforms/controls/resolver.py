"""
Resolution of a human-readable field label to a live control.
"""

from typing import Iterable, Optional, Sequence

from uciforms.config.settings import get_settings
from uciforms.core.interfaces import UIDriver
from uciforms.core.types import ControlHandle, ControlRole
from uciforms.error_handling.exceptions import AmbiguousControlError, ControlNotFoundError
from uciforms.matching.text import LABEL_SUFFIXES, label_pattern
from uciforms.monitoring.logger import get_logger

DEFAULT_ROLES: Sequence[ControlRole] = (ControlRole.COMBOBOX, ControlRole.TEXTBOX)


class ControlResolver:
    """
    Finds the control whose accessible name is the label, trying roles in order.

    The same logical field renders as different roles across field types and
    tenants, so callers pass the roles they accept in priority order. When
    several controls share a label the first in document order wins unless
    strict resolution is enabled.
    """

    def __init__(
        self,
        driver: UIDriver,
        probe_timeout_ms: Optional[int] = None,
        strict: Optional[bool] = None,
    ) -> None:
        settings = get_settings()
        self.driver = driver
        self.probe_timeout_ms = probe_timeout_ms or settings.control_probe_timeout_ms
        self.strict = settings.strict_labels if strict is None else strict
        self.logger = get_logger("controls.resolver")

    async def resolve(
        self,
        label: str,
        roles: Iterable[ControlRole] = DEFAULT_ROLES,
        *,
        timeout_ms: Optional[int] = None,
        suffixes: Iterable[str] = LABEL_SUFFIXES,
    ) -> ControlHandle:
        """
        Resolve a label to the first visible control among the candidate roles.

        Args:
            label: Field label as an accessibility reader perceives it
            roles: Acceptable roles in priority order
            timeout_ms: Visibility probe per role (defaults to settings)
            suffixes: Type suffixes tolerated after the label

        Returns:
            Handle annotated with the role that matched

        Raises:
            ControlNotFoundError: No role produced a visible control in time
            AmbiguousControlError: Several controls match and strict mode is on
        """
        role_list = [ControlRole(role) for role in roles]
        pattern = label_pattern(label, suffixes)
        timeout = timeout_ms or self.probe_timeout_ms

        for role in role_list:
            element = self.driver.query(role.value, pattern.regex)
            if not await self.driver.is_visible(element, timeout):
                continue

            matches = await self.driver.count(
                self.driver.query(role.value, pattern.regex, index=None)
            )
            if matches > 1:
                if self.strict:
                    raise AmbiguousControlError(label, matches, role.value)
                self.logger.warning(
                    f"Label '{label}' matches {matches} controls, using the first",
                    extra={"label": label, "role": role.value},
                )

            self.logger.debug(
                "Resolved control",
                extra={"label": label, "role": role.value},
            )
            return ControlHandle(role=role, label=label, element=element)

        raise ControlNotFoundError(label, [role.value for role in role_list])

    async def probe(
        self,
        label: str,
        role: ControlRole,
        *,
        timeout_ms: Optional[int] = None,
    ) -> Optional[ControlHandle]:
        """Resolve a single role, returning None instead of raising."""
        try:
            return await self.resolve(label, [role], timeout_ms=timeout_ms)
        except ControlNotFoundError:
            return None
