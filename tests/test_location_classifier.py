"""Tests for pickup location resolution."""

from core.config import ExtractionConfig
from extractors.location_classifier import (
    PickupLocationResolver,
    get_pickup_resolver,
    resolve_pickup_location,
)

SCORED_TEXT = (
    "Seller: Lakeshore Motors\n"
    "123 Industrial Rd, Laval QC H7L 4S3\n"
    "Pickup at:\n"
    "8670 10e Avenue, Montreal QC H1Z 3B8\n"
)


class TestScoreContext:
    """Tests for keyword scoring of the text before a candidate."""

    def setup_method(self):
        self.resolver = PickupLocationResolver()

    def test_pickup_wording(self):
        assert self.resolver.score_context("Pickup Location") == 4
        assert self.resolver.score_context("vehicle to be picked from this pick-up yard") == 4

    def test_seller_wording(self):
        assert self.resolver.score_context("Selling dealer") == -3

    def test_drop_off_and_buyer(self):
        assert self.resolver.score_context("drop-off") == 1
        assert self.resolver.score_context("Buyer") == -1

    def test_pickup_heading_beats_selling_heading(self):
        assert self.resolver.score_context("...Pickup Location:\n") == 4
        assert self.resolver.score_context("...Selling Dealership:\n") == -3

    def test_groups_add_up(self):
        assert self.resolver.score_context("Vehicle location for buyer") == 3

    def test_neutral(self):
        assert self.resolver.score_context("Address") == 0
        assert self.resolver.score_context("") == 0


class TestCandidates:
    """Tests for candidate discovery."""

    def test_scored_in_document_order(self):
        found = PickupLocationResolver().candidates(SCORED_TEXT)
        assert [c.breakdown.city for c in found] == ["Laval", "Montreal"]
        assert found[0].score == -3
        # Seller wording is still inside the context window of the second address
        assert found[1].score == 1
        assert found[0].offset < found[1].offset

    def test_unknown_province_dropped(self):
        assert PickupLocationResolver().candidates("12 Main St, Toronto, XX, M5V 2T6") == []


class TestResolve:
    """Tests for the pickup decision."""

    def test_heading_window(self, release_form_text):
        """The address under the pickup heading wins over the seller address above it."""
        b = PickupLocationResolver().resolve(release_form_text)
        assert b.number == "8670"
        assert b.street == "10e Avenue"
        assert b.city == "Montreal"
        assert b.province == "QC"
        assert b.postal_code == "H1Z 3B8"
        assert b.country == "Canada"

    def test_context_scoring(self):
        b = PickupLocationResolver().resolve(SCORED_TEXT)
        assert b.city == "Montreal"

    def test_tie_keeps_first(self):
        text = (
            "Address A:\n100 Main St, Toronto ON M5V 2T6\n"
            "Address B:\n200 King St, Ottawa ON K1A 0B1\n"
        )
        assert PickupLocationResolver().resolve(text).city == "Toronto"

    def test_heading_window_limit(self):
        """An address beyond the heading window is found by the scan instead."""
        text = "Pickup Location:\n" + ("x " * 100) + "\n8670 10e Avenue, Montreal, QC, H1Z 3B8"
        resolver = PickupLocationResolver(config=ExtractionConfig(pickup_window_chars=50))
        assert resolver.heading_window(text) == ("x " * 25)
        assert resolver.resolve(text).city == "Montreal"

    def test_no_heading_uses_whole_text(self):
        text = "Ship from 8670 10e Avenue, Montreal, QC, H1Z 3B8 today"
        assert PickupLocationResolver().heading_window(text) == text
        assert PickupLocationResolver().resolve(text).postal_code == "H1Z 3B8"

    def test_nothing_found(self):
        assert PickupLocationResolver().resolve("No address on this page") is None
        assert PickupLocationResolver().resolve("") is None
        assert PickupLocationResolver().resolve("12 Main St, Toronto, XX, M5V 2T6") is None

    def test_module_helpers(self, release_form_text):
        assert get_pickup_resolver() is get_pickup_resolver()
        assert resolve_pickup_location(release_form_text).city == "Montreal"

    def test_prefix_mismatch_logged(self, caplog):
        """A postal code from another province is kept but logged."""
        with caplog.at_level("WARNING", logger="extractors.location_classifier"):
            b = PickupLocationResolver().resolve("Pickup Location:\n12 Main St, Toronto, QC, M5V 2T6")
        assert b.province == "QC"
        assert "does not belong to QC" in caplog.text
