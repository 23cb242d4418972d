"""Response store helpers"""

from typing import List, Optional

MULTI_SELECT_DELIMITER = "|"
OTHER_OPTION = "Other"
OTHER_PREFIX = "Other: "
NONE_OPTION = "I don't have any"


def is_other_option(response: str) -> bool:
    """True when the answer is the "Other" escape, in any casing"""
    return response.strip().lower() == OTHER_OPTION.lower()


def is_yes_response(response: str) -> bool:
    return response.strip().lower() == "yes"


def is_i_dont_have_any(response: str) -> bool:
    return response.strip().lower() == NONE_OPTION.lower()


def is_other_value(item: str) -> bool:
    """Stored "Other" selections are either bare or carry the typed text"""
    return item == OTHER_OPTION or item.startswith(OTHER_PREFIX)


def format_other_value(text: str) -> str:
    return f"{OTHER_PREFIX}{text.strip()}"


def parse_multi_select(stored_value: Optional[str]) -> List[str]:
    """Split a stored multi-select value into its labels"""
    if not stored_value:
        return []
    return [item.strip() for item in stored_value.split(MULTI_SELECT_DELIMITER) if item.strip()]


def join_multi_select(values: List[str]) -> str:
    return MULTI_SELECT_DELIMITER.join(value for value in values if value)


def toggle_multi_select_option(stored_value: Optional[str], option: str) -> str:
    """
    Toggle an option's membership in a stored multi-select value.

    Toggling "Other" removes any "Other: <text>" entry as well. Applying the
    same toggle twice restores the original selection.
    """
    existing = parse_multi_select(stored_value)

    if option == OTHER_OPTION:
        matches = is_other_value
    else:
        def matches(item: str) -> bool:
            return item == option

    if any(matches(item) for item in existing):
        return join_multi_select([item for item in existing if not matches(item)])

    existing.append(option)
    return join_multi_select(existing)


def append_multi_select_value(stored_value: Optional[str], value: str) -> str:
    existing = parse_multi_select(stored_value)
    existing.append(value)
    return join_multi_select(existing)


def normalize_for_display(values: List[str]) -> List[str]:
    """Map "Other: <text>" back to the "Other" label so option buttons can match"""
    return [OTHER_OPTION if item.startswith(OTHER_PREFIX) else item for item in values]
