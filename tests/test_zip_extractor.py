"""Tests for in-memory archive extraction."""

import logging

import pytest

from conftest import build_zip
from miniapp_guide.errors import (
    ArchiveExtractionFailed,
    EmptyArchive,
    InvalidFormat,
    NoMatchingSourceFiles,
    OversizedArchive,
)
from miniapp_guide.zip_extractor import ZipExtractor, is_unsafe_path


class TestValidation:
    """Checks run before the archive is opened."""

    def test_empty_payload_rejected(self):
        with pytest.raises(EmptyArchive) as exc:
            ZipExtractor().extract(b"", "application/zip")
        assert exc.value.code == "ARCHIVE4001"

    def test_none_payload_rejected(self):
        with pytest.raises(EmptyArchive):
            ZipExtractor().extract(None, "application/zip")

    def test_oversized_payload_rejected(self):
        archive = build_zip({"Main.kt": "fun main() {}"})
        with pytest.raises(OversizedArchive) as exc:
            ZipExtractor(max_size_bytes=10).extract(archive, "application/zip")
        assert exc.value.http_status == 400
        assert "10 bytes" in exc.value.message

    def test_wrong_content_type_rejected(self):
        archive = build_zip({"Main.kt": "fun main() {}"})
        with pytest.raises(InvalidFormat):
            ZipExtractor().extract(archive, "text/plain")

    def test_missing_content_type_rejected(self):
        archive = build_zip({"Main.kt": "fun main() {}"})
        with pytest.raises(InvalidFormat):
            ZipExtractor().extract(archive, None)

    @pytest.mark.parametrize(
        "content_type",
        ["application/zip", "application/x-zip-compressed", "application/octet-stream", "Application/Zip; charset=binary"],
    )
    def test_accepted_content_types(self, content_type):
        archive = build_zip({"Main.kt": "fun main() {}"})
        files = ZipExtractor().extract(archive, content_type)
        assert [f.file_name for f in files] == ["Main.kt"]


class TestExtraction:
    """Entry filtering and decoding."""

    def test_only_source_files_returned(self, wallet_zip):
        files = ZipExtractor().extract(wallet_zip)

        names = [f.file_name for f in files]
        assert names == [
            "wallet/app/src/main/java/ui/SendScreen.kt",
            "wallet/app/src/main/java/ui/MainScreen.kt",
        ]

    def test_build_output_skipped(self):
        archive = build_zip({
            "app/build/tmp/Gen.kt": "x",
            "app/.gradle/Cache.kt": "x",
            "web/node_modules/lib/index.html": "<p></p>",
            "app/src/Keep.kt": "keep",
        })
        files = ZipExtractor().extract(archive)
        assert [f.file_name for f in files] == ["app/src/Keep.kt"]

    def test_directory_entries_skipped(self):
        archive = build_zip({"ui.kt/": None, "ui.kt/Screen.kt": "x"})
        files = ZipExtractor().extract(archive)
        assert [f.file_name for f in files] == ["ui.kt/Screen.kt"]

    def test_suffix_match_is_case_insensitive(self):
        archive = build_zip({"web/INDEX.HTML": "<button>Go</button>", "notes.txt": "x"})
        files = ZipExtractor().extract(archive)
        assert [f.file_name for f in files] == ["web/INDEX.HTML"]

    def test_content_decoded_and_size_in_bytes(self):
        source = 'Text("송금")'
        archive = build_zip({"Send.kt": source})
        [extracted] = ZipExtractor().extract(archive)

        assert extracted.content == source
        assert extracted.file_size == len(source.encode("utf-8"))
        assert extracted.to_dict() == {
            "fileName": "Send.kt",
            "content": source,
            "fileSize": len(source.encode("utf-8")),
        }

    def test_invalid_utf8_replaced(self):
        archive = build_zip({"Bad.kt": b"Text(\"\xff\")"})
        [extracted] = ZipExtractor().extract(archive)
        assert "\ufffd" in extracted.content

    def test_custom_extensions(self):
        archive = build_zip({"Main.kt": "x", "page.html": "<p></p>"})
        files = ZipExtractor(source_extensions=[".HTML"]).extract(archive)
        assert [f.file_name for f in files] == ["page.html"]


class TestFailures:
    """Archives that yield nothing usable."""

    def test_no_matching_files(self):
        archive = build_zip({"README.md": "# hi", "docs/": None})
        with pytest.raises(NoMatchingSourceFiles) as exc:
            ZipExtractor().extract(archive)
        assert exc.value.code == "ARCHIVE4004"

    def test_corrupt_archive(self):
        with pytest.raises(ArchiveExtractionFailed) as exc:
            ZipExtractor().extract(b"this is definitely not a zip archive")
        assert exc.value.http_status == 500

    def test_traversal_entries_never_returned(self, caplog):
        archive = build_zip({
            "../evil.kt": "x",
            "app/../../evil2.kt": "x",
            "/abs/Evil.kt": "x",
            "app/src/Good.kt": "good",
        })
        with caplog.at_level(logging.WARNING, logger="miniapp_guide"):
            files = ZipExtractor().extract(archive)

        assert [f.file_name for f in files] == ["app/src/Good.kt"]
        assert "path traversal" in caplog.text

    def test_only_traversal_entries(self):
        archive = build_zip({"../evil.kt": "x"})
        with pytest.raises(NoMatchingSourceFiles):
            ZipExtractor().extract(archive)


class TestUnsafePath:
    @pytest.mark.parametrize(
        "name",
        ["../a.kt", "a/../../b.kt", "/etc/a.kt", "\\win\\a.kt", "C:/a.kt", "c:\\a.kt", "a\\..\\b.kt"],
    )
    def test_unsafe(self, name):
        assert is_unsafe_path(name) is True

    @pytest.mark.parametrize("name", ["a.kt", "app/src/a.kt", "app/..hidden/a.kt", "a..b.kt"])
    def test_safe(self, name):
        assert is_unsafe_path(name) is False
