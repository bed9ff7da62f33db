"""Tests for the end-to-end extraction flow."""

import base64
from unittest.mock import Mock

import pytest

from core.config import AppConfig, OcrConfig, OcrCredentialsMissing, VinDecodeConfig
from models.document import ExtractedText, LabeledFields, RawDocument
from models.vehicle import VehicleRecord
from services.errors import VinDecodeError
from services.orchestrator import ExtractionOrchestrator, assemble_vehicle, extract_documents

VIN = "1HGCM82633A004352"


def _text_upload(text, name="release.txt", doc_type="release_form"):
    return {
        "name": name,
        "type": "text/plain",
        "base64": base64.b64encode(text.encode("utf-8")).decode("ascii"),
        "docType": doc_type,
    }


def _config(decode=False):
    return AppConfig(vin_decode=VinDecodeConfig(enabled=decode))


class TestAssembleVehicle:
    """Tests for per-field vehicle assembly."""

    def test_ymm_line_beats_label(self):
        text = f"Make: Toyota\n2019 Honda Civic LX\nVIN: {VIN}"
        labels = LabeledFields(make="Toyota")
        vehicle = assemble_vehicle(text, VIN, labels)
        assert vehicle.make == "Honda"
        assert vehicle.year == "2019"
        assert vehicle.model == "Civic LX"
        assert vehicle.vin == VIN

    def test_labels_fill_gaps(self):
        text = f"Make: Toyota\nModel: Corolla\nVIN: {VIN}"
        labels = LabeledFields(year="2020", make="Toyota", model="Corolla")
        vehicle = assemble_vehicle(text, VIN, labels)
        assert (vehicle.year, vehicle.make, vehicle.model) == ("2020", "Toyota", "Corolla")

    def test_near_vin_fills_gaps(self):
        """A stoplisted line is still usable when it sits next to the VIN."""
        text = f"2021 Vehicle Inspection Report\nVIN: {VIN}"
        vehicle = assemble_vehicle(text, VIN)
        assert vehicle.year == "2021"
        assert vehicle.make == "Vehicle"

    def test_no_vin(self):
        vehicle = assemble_vehicle("nothing useful", "")
        assert vehicle == VehicleRecord()


class TestToDocument:

    def test_dict_upload(self):
        doc = ExtractionOrchestrator.to_document(_text_upload("hello"))
        assert doc.name == "release.txt"
        assert doc.mime == "text/plain"
        assert doc.payload == b"hello"
        assert doc.size == 5
        assert doc.doc_type == "release_form"

    def test_raw_bytes_upload(self):
        doc = ExtractionOrchestrator.to_document({"name": "a.txt", "bytes": b"hi", "doc_type": "bos"})
        assert doc.payload == b"hi"
        assert doc.doc_type == "bos"

    def test_raw_document_passthrough(self):
        raw = RawDocument("a.txt", "text/plain", b"hi")
        assert ExtractionOrchestrator.to_document(raw) is raw


class TestExtract:
    """Tests for full extraction runs."""

    def test_release_form(self, release_form_text):
        result = ExtractionOrchestrator(config=_config()).extract([_text_upload(release_form_text)])

        assert result.vehicle.vin == VIN
        assert (result.vehicle.year, result.vehicle.make, result.vehicle.model) == ("2019", "Honda", "Civic LX")
        assert result.pickup_location.city == "Montreal"
        assert result.pickup_location.postal_code == "H1Z 3B8"
        assert result.labels.transaction_id == "4451-778"
        assert result.selling_dealership.name == "Lakeshore Motors Inc"
        assert result.buying_dealership.name == "Prairie Auto Group"
        assert result.combined_text == release_form_text.strip()

        data = result.to_dict()
        assert set(data) == {"combined_text", "vehicle", "pickup_location", "files", "labels", "parties"}
        assert data["files"] == [{
            "name": "release.txt",
            "type": "text/plain",
            "docType": "release_form",
            "text": release_form_text,
        }]
        assert set(data["parties"]) == {"selling_dealership", "buying_dealership"}

    def test_combined_text_order(self):
        uploads = [_text_upload("first file", "a.txt"), _text_upload("  ", "b.txt"), _text_upload("second file", "c.txt")]
        result = ExtractionOrchestrator(config=_config()).extract(uploads)
        assert result.combined_text == "first file\n\nsecond file"
        assert [f.name for f in result.files] == ["a.txt", "b.txt", "c.txt"]
        assert result.files[1].text == ""

    def test_unreadable_file_still_listed(self):
        upload = {"name": "archive.zip", "type": "application/zip", "base64": "UEsDBA=="}
        result = ExtractionOrchestrator(config=_config()).extract([upload])
        assert result.files[0].text == ""
        assert result.combined_text == ""
        assert result.vehicle == VehicleRecord()
        assert result.pickup_location is None

    def test_none_uploads_skipped(self):
        result = ExtractionOrchestrator(config=_config()).extract([None, _text_upload("x")])
        assert len(result.files) == 1

    def test_missing_ocr_key_propagates(self):
        config = AppConfig(ocr=OcrConfig(api_key=""), vin_decode=VinDecodeConfig(enabled=False))
        upload = {"name": "scan.jpg", "type": "image/jpeg", "base64": "/9j/4AAQ"}
        with pytest.raises(OcrCredentialsMissing):
            ExtractionOrchestrator(config=config).extract([upload])

    def test_uses_injected_acquirer(self):
        acquirer = Mock()
        acquirer.acquire.return_value = ExtractedText("scan.jpg", "image/jpeg", f"VIN {VIN}\n2018 Ford F-150", "ocr")
        result = ExtractionOrchestrator(config=_config(), acquirer=acquirer).extract(
            [RawDocument("scan.jpg", "image/jpeg", b"\xff\xd8")]
        )
        assert result.vehicle.make == "Ford"
        acquirer.acquire.assert_called_once()

    def test_prose_make_ignored(self):
        """Sentences that mention "make" or "model" are not labels."""
        text = f"Please make sure the vehicle is ready for the carrier\n2019 Honda Civic LX\nVIN: {VIN}"
        result = ExtractionOrchestrator(config=_config()).extract([_text_upload(text)])
        assert result.vehicle.make == "Honda"
        assert result.labels.make == ""

    def test_prose_model_ignored(self):
        text = "2019 Honda Civic LX\nThis model is sold as-is"
        result = ExtractionOrchestrator(config=_config()).extract([_text_upload(text)])
        assert result.vehicle.model == "Civic LX"
        assert result.labels.model == ""

    def test_convenience_function(self, release_form_text):
        result = extract_documents([_text_upload(release_form_text)], config=_config())
        assert result.vehicle.vin == VIN


class TestVinDecodeFill:
    """Tests for filling vehicle gaps from the VIN registry."""

    def test_fills_only_missing_fields(self):
        decoder = Mock()
        decoder.decode.return_value = VehicleRecord(vin=VIN, year="2003", make="HONDA", model="Accord")
        orchestrator = ExtractionOrchestrator(config=_config(decode=True), vin_decoder=decoder)

        result = orchestrator.extract([_text_upload(f"Make: Honda\nVIN: {VIN}")])

        assert result.vehicle.make == "Honda"
        assert result.vehicle.year == "2003"
        assert result.vehicle.model == "Accord"
        decoder.decode.assert_called_once_with(VIN)

    def test_complete_vehicle_not_decoded(self, release_form_text):
        decoder = Mock()
        orchestrator = ExtractionOrchestrator(config=_config(decode=True), vin_decoder=decoder)
        orchestrator.extract([_text_upload(release_form_text)])
        decoder.decode.assert_not_called()

    def test_decode_failure_degrades(self):
        decoder = Mock()
        decoder.decode.side_effect = VinDecodeError("registry down")
        orchestrator = ExtractionOrchestrator(config=_config(decode=True), vin_decoder=decoder)

        result = orchestrator.extract([_text_upload(f"VIN: {VIN}")])

        assert result.vehicle.vin == VIN
        assert result.vehicle.year == ""

    def test_decode_disabled(self):
        decoder = Mock()
        orchestrator = ExtractionOrchestrator(config=_config(decode=True), vin_decoder=decoder, decode_vin=False)
        orchestrator.extract([_text_upload(f"VIN: {VIN}")])
        decoder.decode.assert_not_called()

    def test_no_vin_not_decoded(self):
        decoder = Mock()
        orchestrator = ExtractionOrchestrator(config=_config(decode=True), vin_decoder=decoder)
        orchestrator.extract([_text_upload("no vin")])
        decoder.decode.assert_not_called()

    def test_prose_does_not_block_decode(self):
        decoder = Mock()
        decoder.decode.return_value = VehicleRecord(vin=VIN, year="2003", make="HONDA", model="Accord")
        orchestrator = ExtractionOrchestrator(config=_config(decode=True), vin_decoder=decoder)

        result = orchestrator.extract([_text_upload(f"Please make sure the model is clean\nVIN: {VIN}")])

        assert (result.vehicle.make, result.vehicle.model) == ("HONDA", "Accord")
        decoder.decode.assert_called_once_with(VIN)
