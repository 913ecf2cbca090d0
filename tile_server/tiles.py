from __future__ import annotations

import posixpath
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple, Union


@dataclass(frozen=True)
class TileCoordinate:
    """Slippy-map tile address. No bounds are checked against the zoom level."""
    z: int
    x: int
    y: int

    def __post_init__(self) -> None:
        if min(self.z, self.x, self.y) < 0:
            raise ValueError("tile coordinates must be non-negative")

    @property
    def zxy(self) -> Tuple[int, int, int]:
        return (self.z, self.x, self.y)


@dataclass(frozen=True)
class TileFound:
    path: str
    data: bytes
    media_type: str = "image/png"


@dataclass(frozen=True)
class TileNotFound:
    path: str


@dataclass(frozen=True)
class TileReadError:
    path: str


ResponseOutcome = Union[TileFound, TileNotFound, TileReadError]


def tile_path(root: str, coord: TileCoordinate) -> str:
    """
    Location of a tile under `root`:

        root/
          └─ {z}/
              └─ {x}/
                  └─ {y}.png

    Always joined with forward slashes, whatever the host OS.
    """
    return posixpath.join(root, str(coord.z), str(coord.x), f"{coord.y}.png")


def read_tile(root: str, coord: TileCoordinate) -> ResponseOutcome:
    """
    Read a tile from disk in one go.

    Any failure to open (missing, permission denied, a directory in the way)
    is reported as TileNotFound; a failure after the file is open is a
    TileReadError. The handle is closed on every path.
    """
    path = tile_path(root, coord)
    try:
        f = Path(path).open("rb")
    except OSError:
        return TileNotFound(path)
    with f:
        try:
            data = f.read()
        except OSError:
            return TileReadError(path)
    return TileFound(path, data)
