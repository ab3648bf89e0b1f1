"""Unit tests for file I/O functions."""

import pytest

from packforge.utils.file_io import (
    draft_pack_dir,
    list_files,
    production_pack_dir,
    read_json,
    read_text,
    write_json,
    write_markdown,
)


class TestJSONFunctions:
    """Test JSON read/write functions."""

    def test_write_json_creates_directories(self, tmp_path):
        """write_json creates parent directories."""
        data = {"id": "work_inform_A2_1a2b3c4d", "prompts": []}
        file_path = tmp_path / "workspaces" / "de" / "pack.json"

        write_json(data, file_path)
        assert read_json(file_path) == data

    def test_write_json_keeps_umlauts_and_trailing_newline(self, tmp_path):
        """Non-ASCII text is written unescaped."""
        file_path = tmp_path / "unicode.json"
        write_json({"text": "Ich brauche einen Termin beim Bürgeramt."}, file_path)

        content = file_path.read_text(encoding="utf-8")
        assert "Bürgeramt" in content
        assert content.endswith("}\n")

    def test_write_json_without_overwrite(self, tmp_path):
        """overwrite=False refuses to replace an existing file."""
        file_path = tmp_path / "report.json"
        write_json({"run": 1}, file_path, overwrite=False)

        with pytest.raises(FileExistsError):
            write_json({"run": 2}, file_path, overwrite=False)
        assert read_json(file_path) == {"run": 1}

    def test_read_json_nonexistent_file(self, tmp_path):
        """Reading a missing JSON file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            read_json(tmp_path / "nonexistent.json")

    def test_read_json_invalid(self, tmp_path):
        """Invalid JSON surfaces as ValueError."""
        file_path = tmp_path / "broken.json"
        file_path.write_text("{", encoding="utf-8")
        with pytest.raises(ValueError):
            read_json(file_path)


class TestTextFunctions:
    """Test Markdown and plain text helpers."""

    def test_write_markdown_and_read_text(self, tmp_path):
        file_path = tmp_path / "reports" / "report.md"
        write_markdown("# Ingestion Report\n", file_path)
        assert read_text(file_path) == "# Ingestion Report\n"

    def test_write_markdown_without_overwrite(self, tmp_path):
        file_path = tmp_path / "report.md"
        write_markdown("first", file_path, overwrite=False)
        with pytest.raises(FileExistsError):
            write_markdown("second", file_path, overwrite=False)

    def test_read_text_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_text(tmp_path / "missing.txt")


class TestContentTree:
    """Test workspace path helpers and listing."""

    def test_draft_pack_dir(self, tmp_path):
        path = draft_pack_dir(tmp_path, "de", "work_inform_A2_1a2b3c4d")
        assert path == tmp_path / "workspaces" / "de" / "draft" / "packs" / "work_inform_A2_1a2b3c4d"
        assert not path.exists()

    def test_production_pack_dir(self, tmp_path):
        path = production_pack_dir("content/v1", "de", "work_inform_A2_1a2b3c4d")
        assert path.parts[-4:] == ("workspaces", "de", "packs", "work_inform_A2_1a2b3c4d")

    def test_list_files(self, tmp_path):
        """Test listing files in directory."""
        (tmp_path / "work.json").touch()
        (tmp_path / "doctor.json").touch()
        (tmp_path / "notes.txt").touch()
        (tmp_path / "subdir").mkdir()
        (tmp_path / "subdir" / "housing.json").touch()

        json_files = list_files(tmp_path, "*.json", recursive=False)
        assert [f.name for f in json_files] == ["doctor.json", "work.json"]

        all_files = list_files(tmp_path, "*", recursive=False)
        assert len(all_files) == 3

        json_files_recursive = list_files(tmp_path, "*.json", recursive=True)
        assert len(json_files_recursive) == 3

    def test_list_files_nonexistent_directory(self, tmp_path):
        """Test listing files in non-existent directory."""
        assert list_files(tmp_path / "nonexistent", "*.json") == []
