"""Filesystem path helpers for model-supplied names."""

import string

ALLOWED_CHARACTERS = frozenset(string.ascii_lowercase + string.digits + "_")
REPLACEMENT_CHARACTER = "_"
FALLBACK_STEM = "default"
MAX_STEM_LENGTH = 100


def sanitize_file_stem(raw: str) -> str:
    """Turn an arbitrary string into a safe single path segment.

    ASCII capitals are lowercased and every other character outside ``[a-z0-9_]``
    (separators, dots, whitespace, control and non-ASCII characters) becomes an
    underscore, so the result can never leave the directory it is joined onto.

    >>> sanitize_file_stem("Banana Bread!! 2024")
    'banana_bread___2024'
    >>> sanitize_file_stem("../../etc/passwd")
    '______etc_passwd'
    """
    characters = []
    for char in str(raw)[:MAX_STEM_LENGTH]:
        if "A" <= char <= "Z":
            char = char.lower()
        characters.append(char if char in ALLOWED_CHARACTERS else REPLACEMENT_CHARACTER)

    return "".join(characters) or FALLBACK_STEM
