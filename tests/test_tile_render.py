"""Tests for tile formatting and template rendering."""

import pytest

from tile_render import (
    ALL_PLACEHOLDERS,
    STYLE_HEX,
    RenderContext,
    find_unresolved,
    format_tile,
    load_templates,
    make_tiles_values,
    render_templates,
    stored_value,
    substitute,
    tile_histogram,
)
from tmx_errors import TmxTemplateError
from tmx_parser import MapDocument


@pytest.fixture
def ctx(fixed_time):
    return RenderContext.for_output(
        output_path="gen/maps/level1",
        source_path="maps/level1.tmx",
        tool_name="tmxc",
        tool_version="1.0.0",
        generated_at=fixed_time,
    )


@pytest.fixture
def doc():
    return MapDocument(width=2, height=2, tiles=(1, 2, 3, 4))


class TestStoredValue:
    """Test rebasing of Tiled indices."""

    def test_first_tile_is_zero(self):
        assert stored_value(1) == 0

    def test_empty_is_sentinel(self):
        assert stored_value(0) == -1

    def test_shift(self):
        assert stored_value(42) == 41


class TestFormatTile:
    """Test formatting of a single stored value."""

    def test_decimal_padding(self):
        """Test decimal values are right-justified in four columns."""
        assert format_tile(4) == "   4,"
        assert format_tile(123) == " 123,"

    def test_decimal_sentinel(self):
        assert format_tile(-1) == "  -1,"

    def test_decimal_wider_than_field(self):
        """Test values wider than the field keep their leading space."""
        assert format_tile(1000) == " 1000,"

    def test_hex_padding(self):
        assert format_tile(0, STYLE_HEX) == "0x000,"
        assert format_tile(255, STYLE_HEX) == "0x0ff,"
        assert format_tile(4096, STYLE_HEX) == "0x1000,"

    def test_hex_sentinel_has_no_sign_handling(self):
        assert format_tile(-1, STYLE_HEX) == "0x0-1,"

    def test_unknown_style(self):
        with pytest.raises(ValueError):
            format_tile(1, "octal")


class TestMakeTilesValues:
    """Test row wrapping of the tile grid."""

    def test_wraps_after_each_row(self):
        """Test one line break for two rows of four."""
        text = make_tiles_values(list(range(1, 9)), 4)

        assert text.count("\n") == 1
        first, second = text.split("\n")
        assert first == "   0,   1,   2,   3,"
        assert second == "       4,   5,   6,   7,"

    def test_two_by_two(self):
        assert make_tiles_values([1, 2, 3, 4], 2) == "   0,   1,\n       2,   3,"

    def test_single_row_has_no_break(self):
        assert "\n" not in make_tiles_values([1, 2, 3], 3)

    def test_empty_cells(self):
        assert make_tiles_values([0, 1], 2) == "  -1,   0,"

    def test_hex(self):
        assert make_tiles_values([1, 2, 3, 4], 2, STYLE_HEX) == "0x000,0x001,\n    0x002,0x003,"

    def test_partial_last_row(self):
        text = make_tiles_values([1, 1, 1, 1, 1], 2)
        assert text.count("\n") == 2

    def test_bad_width(self):
        with pytest.raises(ValueError):
            make_tiles_values([1], 0)


class TestSubstitute:
    """Test placeholder substitution."""

    def test_replaces_all_occurrences(self):
        assert substitute("__A__ and __A__", {"A": "x"}) == "x and x"

    def test_single_pass(self):
        """Test substituted values are not scanned again."""
        assert substitute("__A__", {"A": "__B__", "B": "y"}) == "__B__"

    def test_overlapping_names(self):
        """Test a name that is a prefix of another does not clobber it."""
        values = {"MAP_WIDTH": "8", "DEFINE_MAP_WIDTH": "level_WIDTH"}
        assert substitute("#define __DEFINE_MAP_WIDTH__ __MAP_WIDTH__", values) == "#define level_WIDTH 8"

    def test_unknown_tokens_untouched(self):
        assert substitute("__attribute__((packed))", {"A": "x"}) == "__attribute__((packed))"

    def test_find_unresolved_only_known_names(self):
        assert find_unresolved("__cplusplus __MAP_DATA__ __MAP_DATA__") == ["MAP_DATA"]


class TestRenderContext:
    """Test names derived from the output path."""

    def test_base_name_strips_dir_and_extension(self, fixed_time):
        ctx = RenderContext.for_output("out/dir/castle.map", "castle.tmx", "tmxc", "1.0.0", fixed_time)

        assert ctx.output_base_name == "castle"
        assert ctx.header_filename == "castle.h"
        assert ctx.source_filename == "castle.c"

    def test_date_text(self, ctx):
        assert ctx.date_text == "2024-03-17 12:30:00+00:00"


class TestRenderTemplates:
    """Test rendering of both templates."""

    def test_bundled_templates_resolve_everything(self, doc, ctx):
        """Test no placeholder survives in either output."""
        header_t, source_t = load_templates()
        header, source = render_templates(doc, ctx, header_t, source_t)

        for name in ALL_PLACEHOLDERS:
            assert f"__{name}__" not in header
            assert f"__{name}__" not in source

    def test_end_to_end_values(self, doc, ctx):
        header_t, source_t = load_templates()
        header, source = render_templates(doc, ctx, header_t, source_t)

        assert "level1.h" in header
        assert "#ifndef LEVEL1__INCLUDE" in header
        assert "#define level1_WIDTH  2" in header
        assert "extern const int level1_TILES[level1_WIDTH * level1_HEIGHT];" in header
        assert "level1.c" in source
        assert "   0,   1,\n       2,   3," in source
        assert "maps/level1.tmx" in source
        assert "tmxc - 1.0.0" in source
        assert "2024-03-17 12:30:00+00:00" in header

    def test_side_specific_placeholders(self, doc, ctx):
        header, source = render_templates(
            doc,
            ctx,
            "__EXPORT_HEADER_FILENAME__|__VAR_MAP_NAME__",
            "__EXPORT_SOURCE_FILENAME__|__MAP_DATA__",
        )

        assert header == "level1.h|level1_TILES"
        assert source == "level1.c|   0,   1,\n       2,   3,"

    def test_map_data_in_header_is_rejected(self, doc, ctx):
        with pytest.raises(TmxTemplateError, match="__MAP_DATA__"):
            render_templates(doc, ctx, "__MAP_DATA__", "")

    def test_header_filename_in_source_is_rejected(self, doc, ctx):
        with pytest.raises(TmxTemplateError, match="__EXPORT_HEADER_FILENAME__"):
            render_templates(doc, ctx, "", "#include \"__EXPORT_HEADER_FILENAME__\"")

    def test_render_is_repeatable(self, doc, ctx):
        header_t, source_t = load_templates()

        assert render_templates(doc, ctx, header_t, source_t) == render_templates(doc, ctx, header_t, source_t)

    def test_missing_template_dir(self, tmp_path):
        with pytest.raises(TmxTemplateError, match="not found"):
            load_templates(str(tmp_path))


def test_tile_histogram():
    assert tile_histogram([0, 1, 1, 3, 0, 0]) == {-1: 3, 0: 2, 2: 1}
