"""Join code generation and normalization."""

import re
import secrets

from chorecoin.core.config import constants


_JOIN_CODE_PATTERN = re.compile(
    rf"^[{constants.JOIN_CODE_ALPHABET}]{{{constants.JOIN_CODE_BLOCK_LENGTH}}}"
    rf"{constants.JOIN_CODE_SEPARATOR}"
    rf"[{constants.JOIN_CODE_ALPHABET}]{{{constants.JOIN_CODE_BLOCK_LENGTH}}}$"
)


def _random_block() -> str:
    return "".join(secrets.choice(constants.JOIN_CODE_ALPHABET) for _ in range(constants.JOIN_CODE_BLOCK_LENGTH))


def generate_join_code() -> str:
    """Generate a group join code like "K7QM-3XHP"."""
    return f"{_random_block()}{constants.JOIN_CODE_SEPARATOR}{_random_block()}"


def normalize_join_code(code: str) -> str:
    """Uppercase and trim a user-entered join code."""
    return code.strip().upper()


def is_valid_join_code(code: str) -> bool:
    """Return True if the code has the XXXX-XXXX shape over the join code alphabet."""
    return bool(_JOIN_CODE_PATTERN.match(code))
