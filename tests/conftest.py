"""Shared fixtures for the tmxc test suite."""

from datetime import datetime, timezone

import pytest


def make_tmx(width, height, payload, encoding="csv", layer=True):
    """Build a minimal Tiled map document around a raw <data> payload."""
    enc = f' encoding="{encoding}"' if encoding else ""
    body = ""
    if layer:
        body = (
            f' <layer id="1" name="Tile Layer 1" width="{width}" height="{height}">\n'
            f"  <data{enc}>{payload}</data>\n"
            " </layer>\n"
        )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<map version="1.10" orientation="orthogonal" width="{width}" height="{height}" '
        'tilewidth="16" tileheight="16">\n'
        ' <tileset firstgid="1" source="tiles.tsx"/>\n'
        f"{body}"
        "</map>\n"
    )


def csv_rows(tiles, width, newline="\n"):
    """Lay tiles out the way Tiled does: one row per line, trailing comma on all but the last."""
    rows = [tiles[i:i + width] for i in range(0, len(tiles), width)]
    lines = [",".join(str(t) for t in row) for row in rows]
    return newline + ("," + newline).join(lines) + newline


@pytest.fixture
def fixed_time():
    return datetime(2024, 3, 17, 12, 30, 0, tzinfo=timezone.utc)


@pytest.fixture
def write_tmx(tmp_path):
    def _write(name, width, height, tiles, newline="\n"):
        path = tmp_path / name
        path.write_text(make_tmx(width, height, csv_rows(tiles, width, newline)), encoding="utf-8")
        return path

    return _write
