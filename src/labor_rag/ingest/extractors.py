"""Text extraction for PDF, DOCX, plain text and scanned images."""
from __future__ import annotations

import codecs
import io
import logging
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path

from docx import Document
from pdfminer.high_level import extract_text as pdf_extract_text

from labor_rag.errors import EmptyExtractionError, UnsupportedFormatError

from .format_detection import DocumentFormat

LOGGER = logging.getLogger(__name__)

# Below this many characters a PDF is treated as scanned and sent to OCR.
MIN_NATIVE_PDF_CHARS = 20


@dataclass(slots=True)
class ExtractionResult:
    text: str
    ocr_performed: bool = False


def _run_ocr_command(cmd: list[str]) -> None:
    LOGGER.debug("Running OCR command: %s", " ".join(cmd))
    try:
        subprocess.run(cmd, check=True, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
    except FileNotFoundError as exc:
        raise RuntimeError(f"{cmd[0]} is not installed") from exc
    except subprocess.CalledProcessError as exc:
        raise RuntimeError(f"{cmd[0]} failed: {exc.stderr.decode(errors='ignore')}") from exc


class PDFExtractor:
    """Extract text from PDF documents with an ``ocrmypdf`` fallback for scans."""

    def __init__(self, ocr_language: str = "ara+eng", min_native_chars: int = MIN_NATIVE_PDF_CHARS) -> None:
        self.ocr_language = ocr_language
        self.min_native_chars = min_native_chars

    def extract(self, data: bytes) -> ExtractionResult:
        """Prefer the embedded text layer; OCR the file when it is too thin."""

        text = self._extract_native(data)
        if len(text.strip()) >= self.min_native_chars:
            return ExtractionResult(text=text)

        LOGGER.info("PDF text content too small (%s chars), attempting OCR fallback", len(text.strip()))
        try:
            ocr_text = self._perform_ocr(data)
        except RuntimeError as error:
            LOGGER.warning("OCR failed (%s); keeping native extraction", error)
            return ExtractionResult(text=text)
        return ExtractionResult(text=ocr_text, ocr_performed=True)

    def _extract_native(self, data: bytes) -> str:
        try:
            return pdf_extract_text(io.BytesIO(data)) or ""
        except Exception as error:  # pdfminer raises a zoo of parser errors
            LOGGER.warning("pdfminer failed to extract text: %s", error)
            return ""

    def _perform_ocr(self, data: bytes) -> str:
        with tempfile.TemporaryDirectory() as tmpdir:
            source = Path(tmpdir) / "input.pdf"
            output_pdf = Path(tmpdir) / "ocr-output.pdf"
            sidecar = Path(tmpdir) / "ocr-output.txt"
            source.write_bytes(data)
            _run_ocr_command(
                [
                    "ocrmypdf",
                    "--force-ocr",
                    "-l",
                    self.ocr_language,
                    "--sidecar",
                    str(sidecar),
                    str(source),
                    str(output_pdf),
                ]
            )
            if sidecar.exists():
                return sidecar.read_text(encoding="utf-8")
            return self._extract_native(output_pdf.read_bytes())


class DocxExtractor:
    """Extract paragraph and table text from Microsoft Word documents."""

    def extract(self, data: bytes) -> ExtractionResult:
        try:
            document = Document(io.BytesIO(data))
        except Exception as error:
            raise EmptyExtractionError(f"Unable to read DOCX document: {error}") from error

        parts = [paragraph.text for paragraph in document.paragraphs if paragraph.text.strip()]
        for table in document.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if cells:
                    parts.append(" | ".join(cells))
        return ExtractionResult(text="\n\n".join(parts))


class TextExtractor:
    """Decode plain-text uploads."""

    def extract(self, data: bytes) -> ExtractionResult:
        # UTF-16 decodes almost any even-length input, so only trust it with a BOM.
        if data.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
            return ExtractionResult(text=data.decode("utf-16"))
        try:
            return ExtractionResult(text=data.decode("utf-8-sig"))
        except UnicodeDecodeError:
            LOGGER.info("Text upload is not UTF-8; decoding as latin-1")
            return ExtractionResult(text=data.decode("latin-1"))


class ImageOCRExtractor:
    """Recognise text in scanned images through the ``tesseract`` CLI."""

    def __init__(self, ocr_language: str = "ara+eng") -> None:
        self.ocr_language = ocr_language

    def extract(self, data: bytes, suffix: str = ".png") -> ExtractionResult:
        with tempfile.TemporaryDirectory() as tmpdir:
            source = Path(tmpdir) / f"input{suffix}"
            output_base = Path(tmpdir) / "ocr-output"
            source.write_bytes(data)
            try:
                _run_ocr_command(["tesseract", str(source), str(output_base), "-l", self.ocr_language])
            except RuntimeError as error:
                raise EmptyExtractionError(f"OCR failed: {error}") from error
            text = output_base.with_suffix(".txt").read_text(encoding="utf-8")
        return ExtractionResult(text=text, ocr_performed=True)


class DocumentExtractor:
    """Dispatch raw bytes to the extractor registered for their format."""

    def __init__(self, ocr_language: str = "ara+eng") -> None:
        self.pdf_extractor = PDFExtractor(ocr_language=ocr_language)
        self.docx_extractor = DocxExtractor()
        self.text_extractor = TextExtractor()
        self.image_extractor = ImageOCRExtractor(ocr_language=ocr_language)

    def extract(self, data: bytes, document_format: DocumentFormat, file_name: str = "") -> ExtractionResult:
        if document_format is DocumentFormat.PDF:
            return self.pdf_extractor.extract(data)
        if document_format is DocumentFormat.DOCX:
            return self.docx_extractor.extract(data)
        if document_format is DocumentFormat.TXT:
            return self.text_extractor.extract(data)
        if document_format is DocumentFormat.IMAGE:
            suffix = Path(file_name).suffix.lower() or ".png"
            return self.image_extractor.extract(data, suffix=suffix)
        raise UnsupportedFormatError(f"Unsupported document format: {document_format}")
