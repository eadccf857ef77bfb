"""Validation helpers shared by the service settings classes."""

import json
from typing import TYPE_CHECKING, Any, ClassVar

from pydantic_settings import EnvSettingsSource

if TYPE_CHECKING:
    from pydantic.fields import FieldInfo


def _checked(items: list[str], *, allow_empty: bool) -> list[str]:
    if not allow_empty and not items:
        raise ValueError("String list value must not be empty")
    return items


def parse_string_list(value: str | list[str], *, allow_empty: bool = False) -> list[str]:
    """Parse a list of strings from an env var or a config value.

    Accepts a list (returned as-is), a JSON array string ('["a","b"]'),
    or a comma-separated string ('a,b'). A blank string is always an error;
    an empty list is an error unless allow_empty is set.
    """
    if isinstance(value, list):
        return _checked(value, allow_empty=allow_empty)

    stripped = value.strip()
    if not stripped:
        raise ValueError("String list value must not be empty")

    if not stripped.startswith("["):
        items = [part.strip() for part in stripped.split(",") if part.strip()]
        return _checked(items, allow_empty=allow_empty)

    try:
        parsed = json.loads(stripped)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON array: {e}") from e
    if not isinstance(parsed, list) or not all(isinstance(item, str) for item in parsed):
        raise ValueError("JSON value must be an array of strings")
    return _checked(parsed, allow_empty=allow_empty)


class StringListEnvSettingsSource(EnvSettingsSource):
    """Env source that hands string-list fields to validators as raw strings.

    pydantic-settings JSON-decodes list fields before validators run, which
    rejects the comma-separated form. Fields named in ``string_list_fields``
    skip that step so ``parse_string_list`` sees the original value.
    """

    string_list_fields: ClassVar[frozenset[str]] = frozenset({"cors_origins"})

    def prepare_field_value(
        self,
        field_name: str,
        field: FieldInfo,
        value: Any,  # noqa: ANN401
        value_is_complex: bool,  # noqa: FBT001
    ) -> Any:  # noqa: ANN401
        if field_name in self.string_list_fields and isinstance(value, str):
            return value
        return super().prepare_field_value(field_name, field, value, value_is_complex)
