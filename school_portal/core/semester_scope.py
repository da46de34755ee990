from fastapi import Request

from school_portal.core.errors import ValidationError

SEMESTER_COOKIE = "active_semester_id"
SEMESTER_QUERY_PARAM = "active_semester_id"
SEMESTER_HEADER = "x-active-semester-id"

MISSING_SEMESTER_MESSAGE = (
    "No active semester selected. Please select an academic semester in the UI "
    "or include the `active_semester_id` cookie, query parameter, or "
    "`x-active-semester-id` header."
)


def find_active_semester_value(request: Request):
    """First non-empty of cookie, query parameter, header"""
    for value in (
        request.cookies.get(SEMESTER_COOKIE),
        request.query_params.get(SEMESTER_QUERY_PARAM),
        request.headers.get(SEMESTER_HEADER),
    ):
        if value is not None and value.strip():
            return value.strip()
    return None


async def get_active_semester_id(request: Request) -> int:
    """The semester a timetable query runs against"""
    value = find_active_semester_value(request)
    if value is None:
        raise ValidationError(MISSING_SEMESTER_MESSAGE)

    try:
        return int(value)
    except ValueError:
        raise ValidationError("Invalid active semester id")
