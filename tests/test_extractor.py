# =============================================================================
# Unit Tests — Text Extraction
# =============================================================================
#
# Plain-text paths only; the Docling converter is replaced with a mock so
# no layout models are loaded.
# =============================================================================

from unittest.mock import MagicMock, patch

from cv_eval.services import extractor
from cv_eval.services.uploads import StoredFile, store_file


class TestExtractText:

    def test_plain_text(self, tmp_path):
        stored = store_file("Héllo CV".encode(), "cv.txt", "text/plain", upload_dir=str(tmp_path))
        assert extractor.extract_text(stored) == "Héllo CV"

    def test_invalid_utf8_replaced(self, tmp_path):
        stored = store_file(b"abc\xffdef", "cv.txt", "text/plain", upload_dir=str(tmp_path))
        assert extractor.extract_text(stored) == "abc�def"

    def test_missing_file_reported_in_text(self, tmp_path):
        stored = StoredFile(
            filename="gone.txt",
            original_name="cv.txt",
            path=str(tmp_path / "gone.txt"),
            mimetype="text/plain",
            size=0,
        )
        assert extractor.extract_text(stored).startswith(
            "Unable to extract content from cv.txt:"
        )

    def test_unsupported_type(self, tmp_path):
        stored = store_file(b"\x89PNG", "cv.png", "image/png", upload_dir=str(tmp_path))
        assert "unsupported type image/png" in extractor.extract_text(stored)

    def test_pdf_goes_through_docling(self, tmp_path):
        stored = store_file(b"%PDF-1.4", "cv.pdf", "application/pdf", upload_dir=str(tmp_path))
        converter = MagicMock()
        converter.convert.return_value.document.export_to_markdown.return_value = "# CV"

        with patch.object(extractor, "_get_converter", return_value=converter):
            assert extractor.extract_text(stored) == "# CV"

        converter.convert.assert_called_once_with(stored.path)

    def test_converter_error_reported_in_text(self, tmp_path):
        stored = store_file(b"%PDF-1.4", "cv.pdf", "application/pdf", upload_dir=str(tmp_path))
        converter = MagicMock()
        converter.convert.side_effect = RuntimeError("corrupt PDF")

        with patch.object(extractor, "_get_converter", return_value=converter):
            text = extractor.extract_text(stored)

        assert text == "Unable to extract content from cv.pdf: corrupt PDF"
