import pytest

from services.document_reader import DocumentReader, DocumentStore, normalize_file_type
from services.errors import DocumentReadError


def test_read_text_from_store():
    reader = DocumentReader()
    ref = reader.store.put(b"Jane Smith\r\nPython developer\r\n")
    assert ref.startswith("mem://")
    assert reader.read(ref, "txt") == "Jane Smith\nPython developer"


def test_read_text_from_path(tmp_path):
    path = tmp_path / "cv.txt"
    path.write_text("Summary\nBackend engineer", encoding="utf-8")
    assert DocumentReader().read(str(path), "txt") == "Summary\nBackend engineer"


def test_file_type_inferred_from_extension(tmp_path):
    path = tmp_path / "cv.txt"
    path.write_text("hello", encoding="utf-8")
    assert DocumentReader().read(str(path), "") == "hello"


def test_unsupported_type():
    reader = DocumentReader()
    ref = reader.store.put(b"<w:document/>")
    with pytest.raises(DocumentReadError, match="Unsupported file type: docx"):
        reader.read(ref, "docx")


def test_missing_file():
    with pytest.raises(DocumentReadError, match="Cannot read document"):
        DocumentReader().read("/nonexistent/cv.txt", "txt")


def test_empty_document():
    reader = DocumentReader()
    ref = reader.store.put(b"   \n\n  ")
    with pytest.raises(DocumentReadError, match="No text"):
        reader.read(ref, "txt")


def test_corrupt_pdf():
    reader = DocumentReader()
    ref = reader.store.put(b"not a pdf")
    with pytest.raises(DocumentReadError, match="Could not parse PDF"):
        reader.read(ref, "pdf")


def test_store_delete():
    store = DocumentStore()
    ref = store.put(b"x")
    assert store.delete(ref) is True
    assert store.get(ref) is None
    assert store.delete(ref) is False


@pytest.mark.parametrize(
    "file_type, filename, expected",
    [
        ("PDF", None, "pdf"),
        ("application/pdf", None, "pdf"),
        ("text/plain", None, "txt"),
        (None, "resume.TXT", "txt"),
        ("", "resume.docx", "docx"),
        (None, None, ""),
    ],
)
def test_normalize_file_type(file_type, filename, expected):
    assert normalize_file_type(file_type, filename) == expected
