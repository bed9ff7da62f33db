"""Tests for the native-text vs OCR decision."""

from extractors.ocr_strategy import OCRStrategy, TextMode, get_ocr_strategy, needs_ocr

VEHICLE_LINE = "2019 Honda Civic LX"
FILLER = "Release notes " * 20


class TestNeedsOcr:
    """Tests for the OCR decision rule."""

    def test_empty_text(self):
        assert needs_ocr("")
        assert needs_ocr("   \n\n  ")
        assert needs_ocr(None)

    def test_short_text_with_vehicle_line(self):
        """A vehicle line alone is not enough when the text is short."""
        text = VEHICLE_LINE + "\n" + "x" * 150
        assert len(text.strip()) < 180
        assert needs_ocr(text)

    def test_long_text_without_vehicle_line(self):
        text = FILLER
        assert len(text.strip()) >= 180
        assert needs_ocr(text)

    def test_long_text_with_vehicle_line(self):
        text = VEHICLE_LINE + "\n" + FILLER
        assert not needs_ocr(text)

    def test_stoplisted_vehicle_line_does_not_count(self):
        text = "2020 Vehicle released to buyer\n" + FILLER
        assert needs_ocr(text)


class TestOCRStrategy:
    """Tests for the strategy object and its metrics."""

    def test_metrics(self):
        metrics = OCRStrategy().analyze_text_quality(VEHICLE_LINE + "\nVIN: 1HGCM82633A004352\n" + FILLER)
        assert metrics.has_vehicle_line
        assert metrics.line_count == 3
        assert not metrics.needs_ocr
        assert metrics.reason == "native text sufficient"

    def test_reason_for_empty_text(self):
        use_ocr, reason = OCRStrategy().should_use_ocr("")
        assert use_ocr
        assert reason == "no native text"

    def test_custom_threshold(self):
        strategy = OCRStrategy(min_native_chars=10)
        assert not strategy.should_use_ocr(VEHICLE_LINE)[0]

    def test_metrics_to_dict(self):
        data = OCRStrategy().analyze_text_quality("short").to_dict()
        assert data["total_chars"] == 5
        assert data["needs_ocr"] is True
        assert set(data) == {"total_chars", "line_count", "has_vehicle_line", "needs_ocr", "reason"}

    def test_singleton(self):
        assert get_ocr_strategy() is get_ocr_strategy()

    def test_text_mode_values(self):
        assert [m.value for m in TextMode] == ["none", "native", "ocr", "hybrid"]
