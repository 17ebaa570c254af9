# -----------------------------------------------------------------------------
# /*
#  * Copyright (C) 2025 CodeStory
#  *
#  * This program is free software; you can redistribute it and/or modify
#  * it under the terms of the GNU General Public License as published by
#  * the Free Software Foundation; Version 2.
#  *
#  * This program is distributed in the hope that it will be useful,
#  * but WITHOUT ANY WARRANTY; without even the implied warranty of
#  * MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
#  * GNU General Public License for more details.
#  *
#  * You should have received a copy of the GNU General Public License
#  * along with this program; if not, you can contact us at support@codestory.build
#  */
# -----------------------------------------------------------------------------

import re
from pathlib import Path

from .exceptions import ValidationError, path_not_found

_META_KEY = re.compile(r"^[A-Za-z_][A-Za-z0-9_.-]*$")


def validate_graph_path(value: str) -> Path:
    """Validate that the graph description exists and is a file."""
    path = Path(value)

    if not path.exists():
        raise path_not_found(value)

    if not path.is_file():
        raise ValidationError(
            f"Graph description is not a file: {value}",
            "Pass the JSON file the resolver wrote, not its directory",
        )

    return path


def validate_metadata(pairs: list[str] | None) -> dict[str, str]:
    """Parse repeated KEY=VALUE options into a dict. Later keys win."""
    metadata: dict[str, str] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        key = key.strip()
        if not sep or not _META_KEY.match(key):
            raise ValidationError(
                f"Invalid metadata: {pair!r}",
                "Metadata must be given as KEY=VALUE, e.g. --meta release=1.4.0",
            )
        metadata[key] = value
    return metadata


def validate_workers(value: int | None) -> int | None:
    if value is not None and value < 1:
        raise ValidationError(
            f"Invalid worker count: {value}", "At least one worker is needed"
        )
    return value


def validate_mode(value: str | None) -> str | None:
    if value is not None and value not in ("development", "production"):
        raise ValidationError(
            f"Invalid mode: {value}", "Mode must be 'development' or 'production'"
        )
    return value
