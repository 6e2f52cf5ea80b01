"""
Tests for Text Preprocessing & Segmentation
============================================
Preprocessor cleanup, synonym normalization and the section segmenter.
"""

from __future__ import annotations

import pytest

from brandguide.models import Category
from brandguide.preprocessor import TextPreprocessor, expand_short_hex
from brandguide.segmenter import (
    CONSERVATIVE_HEADER_PATTERN,
    SectionSegmenter,
)
from brandguide.synonyms import (
    classify_section,
    find_keys,
    normalize_color_to_hex,
    normalize_key,
    normalize_section_name,
    role_keys,
)


# ═══════════════════════════════════════════════════════════════════════════════
# PREPROCESSOR TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestTextPreprocessor:
    """Test text cleanup before segmentation."""

    def test_empty_input(self):
        assert TextPreprocessor().clean("") == ""
        assert TextPreprocessor().clean("   \n\t ") == ""

    def test_control_characters_removed(self):
        assert TextPreprocessor().clean("abc\x00def\x07") == "abcdef"

    def test_smart_quotes_replaced(self):
        text = "\N{LEFT DOUBLE QUOTATION MARK}Hi\N{RIGHT DOUBLE QUOTATION MARK} it\N{RIGHT SINGLE QUOTATION MARK}s"
        assert TextPreprocessor().clean(text) == "\"Hi\" it's"

    def test_whitespace_collapsed_paragraphs_kept(self):
        cleaned = TextPreprocessor().clean("a   b\n\n\n\nc\r\nd")
        assert cleaned == "a b\n\nc\nd"

    def test_glued_header_split(self):
        cleaned = TextPreprocessor().clean("Use the full palettesCOLOR Primary #168EEA")
        assert cleaned == "Use the full palettes\nCOLOR\nPrimary #168EEA"

    def test_short_hex_expanded(self):
        assert expand_short_hex("Accent #3b8 here") == "Accent #3388BB here"

    def test_six_digit_hex_untouched(self):
        assert TextPreprocessor().clean("Primary #168eea") == "Primary #168eea"


# ═══════════════════════════════════════════════════════════════════════════════
# SYNONYM TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestSynonyms:
    """Test vocabulary and color normalization tables."""

    def test_normalize_key(self):
        assert normalize_key("Brand Font") == "primaryFont"
        assert normalize_key("main   hue") == "primary"
        assert normalize_key("Accent Colour") == "accent"
        assert normalize_key("Supporting colour") == "secondary"
        assert normalize_key("unknown thing") == "unknown thing"

    def test_find_keys(self):
        keys = find_keys("Keep clear space and never distort the mark.")
        assert "spacing" in keys
        assert "forbidden" in keys

    def test_find_keys_whole_words(self):
        assert "text" not in find_keys("In this context color matters")

    def test_role_keys(self):
        assert role_keys("Primary Blue", "color") == ["primary"]
        assert role_keys("Heading", "font") == ["primaryFont"]
        assert role_keys("Body", "font") == ["secondaryFont"]
        assert role_keys("Navy", "color") == []

    def test_color_notations(self):
        assert normalize_color_to_hex("#168eea") == "#168EEA"
        assert normalize_color_to_hex("168EEA") == "#168EEA"
        assert normalize_color_to_hex("#3b8") == "#3388BB"
        assert normalize_color_to_hex("rgb(22, 142, 234)") == "#168EEA"
        assert normalize_color_to_hex("rgba(255, 255, 255, 0.5)") == "#FFFFFF"
        assert normalize_color_to_hex("cmyk(0, 0, 0, 100)") == "#000000"
        assert normalize_color_to_hex("C0 M0 Y0 K0") == "#FFFFFF"

    def test_pantone(self):
        assert normalize_color_to_hex("PMS 376") == "#1DB954"
        assert normalize_color_to_hex("Pantone 376 C") == "#1DB954"
        assert normalize_color_to_hex("PMS 9999") == "#PMS9999"

    def test_idempotent(self):
        for value in ("#168EEA", "#PMS9999"):
            assert normalize_color_to_hex(value) == value

    def test_not_a_color(self):
        assert normalize_color_to_hex("") is None
        assert normalize_color_to_hex("Inter") is None
        assert normalize_color_to_hex("rgb(300, 0, 0)") is None

    def test_section_names(self):
        assert normalize_section_name("PALETTE") == Category.COLOR
        assert normalize_section_name("Colours") == Category.COLOR
        assert normalize_section_name("WORDMARK") == Category.LOGO
        assert normalize_section_name("Logotype") == Category.LOGO
        assert normalize_section_name("Typeface") == Category.TYPOGRAPHY
        assert normalize_section_name("Photography") == Category.IMAGERY
        assert normalize_section_name("Tone of Voice") == Category.TONE
        assert normalize_section_name("Introduction") == Category.GENERAL

    def test_classify_section(self):
        assert classify_section("Use hex and rgb values from the palette") == Category.COLOR
        assert classify_section("Our voice and tone in messaging") == Category.TONE
        assert classify_section("Welcome to the guide") == Category.GENERAL
        assert classify_section("") == Category.GENERAL


# ═══════════════════════════════════════════════════════════════════════════════
# SEGMENTER TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestHeaderPatterns:
    """Test the conservative header pattern."""

    @pytest.mark.parametrize("line", [
        "COLOR",
        "Colors",
        "2. Typography:",
        "Our Logo",
        "Brand Colors",
        "Logo Guidelines",
        "Tone of Voice",
    ])
    def test_header_lines(self, line):
        assert CONSERVATIVE_HEADER_PATTERN.match(line)

    @pytest.mark.parametrize("line", [
        "Primary Color: #168EEA",
        "Colors should be used sparingly",
        "Font: Inter",
    ])
    def test_body_lines(self, line):
        assert CONSERVATIVE_HEADER_PATTERN.match(line) is None


class TestSectionSegmenter:
    """Test the two-pass segmenter."""

    def test_empty_text(self):
        assert SectionSegmenter().segment("") == []

    def test_headers_open_sections(self):
        text = "COLOR\nPrimary #168EEA\nTYPOGRAPHY\nInter is our primary font"
        sections = SectionSegmenter().segment(text)

        assert [s.category for s in sections] == [Category.COLOR, Category.TYPOGRAPHY]
        assert sections[0].text == "Primary #168EEA"
        assert sections[0].headers == ["COLOR"]
        assert sections[1].text == "Inter is our primary font"

    def test_preamble_goes_to_general(self):
        text = "Welcome to the brand book\nCOLOR\nPrimary #168EEA"
        sections = SectionSegmenter().segment(text)

        assert sections[0].category == Category.GENERAL
        assert sections[0].text == "Welcome to the brand book"
        assert sections[1].category == Category.COLOR

    def test_no_headers_whole_document(self):
        text = "Just some words here.\nNothing else to see."
        sections = SectionSegmenter().segment(text)

        assert len(sections) == 1
        assert sections[0].category == Category.GENERAL
        assert sections[0].source == "whole_document"
        assert sections[0].text == text

    def test_buried_header_recovered_by_pre_cluster(self):
        text = "Welcome to the guide.\nFont: Inter for all headings"
        sections = SectionSegmenter().segment(text)

        categories = [s.category for s in sections]
        assert categories == [Category.GENERAL, Category.TYPOGRAPHY]
        assert sections[1].source == "pre_cluster"
        assert sections[1].text == "Font: Inter for all headings"

    def test_repeated_header_reopens_section(self):
        text = "COLOR\n#168EEA\nLOGO\nKeep it clean\nCOLOR\n#FF0000"
        sections = SectionSegmenter().segment(text)

        assert [s.category for s in sections] == [Category.COLOR, Category.LOGO]
        assert "#168EEA" in sections[0].text
        assert "#FF0000" in sections[0].text

    def test_no_content_discarded(self):
        text = "Intro line\nCOLOR\nPrimary #168EEA\nColors: Accent #FF0000"
        sections = SectionSegmenter().segment(text)
        combined = "\n".join(s.text for s in sections)

        for line in ("Intro line", "Primary #168EEA", "Colors: Accent #FF0000"):
            assert line in combined

    def test_pre_cluster_does_not_duplicate_lines(self):
        text = "COLOR\nPrimary #168EEA\nSecondary #FF0000"
        sections = SectionSegmenter().segment(text)

        assert len(sections) == 1
        assert sections[0].text.count("Primary #168EEA") == 1

    def test_segmenter_is_reusable(self):
        segmenter = SectionSegmenter()
        first = segmenter.segment("COLOR\n#168EEA")
        second = segmenter.segment("COLOR\n#168EEA")
        assert first == second


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
