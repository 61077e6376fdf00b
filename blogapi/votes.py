from typing import Any

from blogapi.exceptions import ValidationError

# Only single up-votes exist; there is no decrement path.
ACCEPTED_VOTE = "1"


def is_vote_present(value: Any) -> bool:
    return value is not None and value != ""


def parse_vote_delta(value: Any) -> int:
    """
    Return the delta for a vote request, rejecting anything but ``"1"``.

    The integer ``1`` is accepted as the JSON spelling of the same vote;
    booleans are not (``true`` is not a vote even though ``True == 1``).
    """
    if isinstance(value, bool) or str(value) != ACCEPTED_VOTE:
        raise ValidationError("vote_number only accepts 1")
    return int(ACCEPTED_VOTE)
