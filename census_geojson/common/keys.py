"""Translation between internal geography keys and Census API vocabulary.

Internal keys are safe as dict keys and as path segments of the boundary
file repository, e.g. ``american-indian-area!alaska-native-area-_reservation-or-statistical-entity-only_``.
The Census API spells the same level
``american indian area/alaska native area (reservation or statistical entity only)``.
"""

from __future__ import annotations

import re

_KEY_TO_STR = {"-_": " (", "_": ")", "!": "/", "-": " "}
_STR_TO_KEY = {" (": "-_", ")": "_", "/": "!", " ": "-"}

# Alternation order matters: two-character tokens must win over their prefixes.
_KEY_TOKENS = re.compile(r"-_|_|!|-")
_STR_TOKENS = re.compile(r" \(|\)|/| ")


def keys_to_strs(key: str) -> str:
    return _KEY_TOKENS.sub(lambda match: _KEY_TO_STR[match.group(0)], key)


def strs_to_keys(value: str) -> str:
    return _STR_TOKENS.sub(lambda match: _STR_TO_KEY[match.group(0)], value)
