"""Request parameter validation and splicing into command templates.

Only parameters named with a leading ``$`` are considered, each may be
given once, and its value must fully match the allow regex. The regex is
the guard against shell injection through parameter values, so there is
no way to construct a substitutor without one.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence

from hookshell.config.settings import DEFAULT_ALLOW_REGEX

logger = logging.getLogger(__name__)

TOKEN_PREFIX = "$"


class ParamSubstitutor:
    """Validates request parameters and replaces ``$name`` tokens.

    Args:
        allow_regex: Pattern every value must match in full.
        enabled: When False, templates are returned untouched.
        stop_on_error: When True a bad parameter fails the whole request;
            when False it is logged and skipped.
    """

    def __init__(
        self,
        allow_regex: str | re.Pattern[str] = DEFAULT_ALLOW_REGEX,
        enabled: bool = True,
        stop_on_error: bool = True,
    ) -> None:
        if isinstance(allow_regex, re.Pattern):
            self._allow = allow_regex
        else:
            self._allow = re.compile(allow_regex)
        self._enabled = enabled
        self._stop_on_error = stop_on_error

    @property
    def enabled(self) -> bool:
        return self._enabled

    def substitute(
        self,
        template: str,
        params: Mapping[str, Sequence[str]],
        path: str = "",
    ) -> str:
        """Return ``template`` with every accepted parameter spliced in.

        Tokens without a matching parameter are left as they are.

        Raises:
            ParamValidationError: On the first rejected parameter, in
                stop-on-error mode.
        """
        if not self._enabled or not params:
            return template

        accepted: dict[str, str] = {}
        for name, values in params.items():
            try:
                accepted[name] = self.validate(name, values)
            except ParamValidationError as e:
                logger.warning("Parameter error on %s: %s", path or "?", e)
                if self._stop_on_error:
                    raise
        return _splice(template, accepted)

    def validate(self, name: str, values: Sequence[str]) -> str:
        """Check one parameter and return its single value."""
        if len(values) != 1:
            raise ParamValidationError(
                f"parameter {name!r} must be given exactly once, got {len(values)} values",
                name=name,
            )
        if not name.startswith(TOKEN_PREFIX) or name == TOKEN_PREFIX:
            raise ParamValidationError(
                f"parameter name {name!r} must be {TOKEN_PREFIX} followed by a name", name=name
            )
        value = values[0]
        if self._allow.fullmatch(value) is None:
            raise ParamValidationError(
                f"value of parameter {name!r} does not match the allowed pattern", name=name
            )
        return value


def _splice(template: str, values: Mapping[str, str]) -> str:
    """Replace all tokens in one pass, longest name first.

    Replacement text is never rescanned, so the result does not depend on
    the order parameters arrived in.
    """
    if not values:
        return template
    names = sorted(values, key=len, reverse=True)
    pattern = re.compile("|".join(re.escape(name) for name in names))
    return pattern.sub(lambda m: values[m.group(0)], template)


class ParamValidationError(Exception):
    """Raised when a request parameter may not be substituted."""

    def __init__(self, message: str, name: str = "") -> None:
        super().__init__(message)
        self.name = name
