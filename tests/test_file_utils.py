# tests/test_file_utils.py
import pytest
from pathlib import Path
from unittest.mock import patch

from codegen.data_models import FileArtifact
from codegen.errors import CommitError
from codegen.file_utils import (
    CommitWriter,
    is_binary_file,
    normalize_line_endings,
    normalize_path,
    read_local_file,
    strip_colons,
)

# Define a mock max file size for tests
MOCK_MAX_FILE_SIZE_BYTES = 1024 # 1 KB for testing size limits


@pytest.fixture
def writer(tmp_path, mock_console):
    return CommitWriter(tmp_path, Path(".codegen/backups"), mock_console, MOCK_MAX_FILE_SIZE_BYTES, line_ending="\n")


# --- Tests for normalize_path ---

def test_normalize_path_absolute(tmp_path):
    """Test normalizing an absolute path."""
    absolute_path = str(tmp_path / "another_file.txt")
    normalized = normalize_path(absolute_path)
    assert Path(normalized).is_absolute()
    assert Path(normalized) == Path(absolute_path).resolve()

def test_normalize_path_with_dots_escaping_root_raises_valueerror(tmp_path):
    """Test normalizing a path with '..' that attempts to escape the root."""
    path_escaping = str(tmp_path / ".." / "some_file.txt")
    with pytest.raises(ValueError, match="Invalid path: .* contains parent directory references"):
        normalize_path(path_escaping)

def test_normalize_path_empty_raises_valueerror():
    """Test normalizing an empty path string."""
    with pytest.raises(ValueError, match="Invalid path: Path cannot be empty."):
        normalize_path("")

# --- Tests for is_binary_file and read_local_file ---

def test_is_binary_file_text(tmp_path):
    text_file = tmp_path / "test.txt"
    text_file.write_text("This is a text file.")
    assert not is_binary_file(str(text_file))

def test_is_binary_file_with_null_byte(tmp_path):
    binary_file = tmp_path / "binary.bin"
    binary_file.write_bytes(b"hello\x00world")
    assert is_binary_file(str(binary_file))

def test_is_binary_file_non_existent(tmp_path):
    """The function catches exceptions and returns True for safety."""
    assert is_binary_file(str(tmp_path / "does_not_exist.bin"))

def test_read_local_file_success(tmp_path):
    test_file = tmp_path / "read_test.txt"
    content = "Line 1\nLine 2\nLine 3"
    test_file.write_text(content, encoding="utf-8")
    assert read_local_file(str(test_file)) == content

def test_read_local_file_encoding_error(tmp_path):
    test_file = tmp_path / "bad_encoding.txt"
    test_file.write_bytes(b'\xff\xfe\xfd') # Invalid UTF-8 byte sequence
    with pytest.raises(UnicodeDecodeError):
        read_local_file(str(test_file))

# --- Path cleanup helpers ---

@pytest.mark.parametrize("raw, expected", [
    ("File: src/a.py", "File src/a.py"),
    ("src/a:b.py", "src/ab.py"),
    ("C:\\proj\\a:b.py", "C:\\proj\\ab.py"),
    ("d:/x.py", "d:/x.py"),
])
def test_strip_colons(raw, expected):
    assert strip_colons(raw) == expected

def test_normalize_line_endings():
    assert normalize_line_endings("a\r\nb\rc\n", "\n") == "a\nb\nc\n"
    assert normalize_line_endings("a\nb\r\n", "\r\n") == "a\r\nb\r\n"

# --- Tests for CommitWriter ---

def test_commit_creates_file_and_parent_dirs(tmp_path, writer, mock_console):
    target = writer.commit(FileArtifact(file_path="pkg/new/mod.py", content="x = 1\n"))
    assert target == (tmp_path / "pkg" / "new" / "mod.py").resolve()
    assert target.read_text(encoding="utf-8") == "x = 1\n"
    mock_console.print.assert_called_with(f"[bold blue]✓[/bold blue] Created/updated file at '[bright_cyan]{target}[/bright_cyan]'")
    assert not (tmp_path / ".codegen" / "backups").exists()

def test_commit_backs_up_existing_file_before_overwrite(tmp_path, writer):
    existing = tmp_path / "src" / "a.py"
    existing.parent.mkdir()
    existing.write_text("old\n", encoding="utf-8")

    writer.commit(FileArtifact(file_path="src/a.py", content="new\n"))

    assert existing.read_text(encoding="utf-8") == "new\n"
    backups = list((tmp_path / ".codegen" / "backups" / "src").glob("a.py.*.bak"))
    assert len(backups) == 1
    assert backups[0].read_text(encoding="utf-8") == "old\n"

def test_backups_are_never_overwritten(tmp_path, writer):
    existing = tmp_path / "a.py"
    existing.write_text("v0", encoding="utf-8")
    with patch("codegen.file_utils.datetime") as mock_datetime:
        mock_datetime.now.return_value.strftime.return_value = "20250101-000000-000000"
        writer.commit(FileArtifact(file_path="a.py", content="v1"))
        writer.commit(FileArtifact(file_path="a.py", content="v2"))
    backup_dir = tmp_path / ".codegen" / "backups"
    assert (backup_dir / "a.py.20250101-000000-000000.bak").read_text(encoding="utf-8") == "v0"
    assert (backup_dir / "a.py.20250101-000000-000000.1.bak").read_text(encoding="utf-8") == "v1"

def test_commit_normalizes_line_endings(tmp_path, mock_console):
    crlf_writer = CommitWriter(tmp_path, Path("bak"), mock_console, MOCK_MAX_FILE_SIZE_BYTES, line_ending="\r\n")
    target = crlf_writer.commit(FileArtifact(file_path="a.txt", content="one\ntwo\r\nthree"))
    assert target.read_bytes() == b"one\r\ntwo\r\nthree"

def test_commit_calls_on_written(writer):
    written = []
    artifact = FileArtifact(file_path="a.py", content="x")
    writer.commit(artifact, on_written=written.append)
    assert written == [artifact]

def test_commit_strips_colons_from_model_paths(tmp_path, writer):
    target = writer.commit(FileArtifact(file_path="src/a:b.py", content="x"))
    assert target == (tmp_path / "src" / "ab.py").resolve()

@pytest.mark.parametrize("bad_path", ["", "   ", "../outside.py", "src/../../outside.py"])
def test_commit_rejects_unsafe_paths(tmp_path, writer, bad_path):
    with pytest.raises(CommitError):
        writer.commit(FileArtifact(file_path=bad_path, content="x"))
    assert not (tmp_path.parent / "outside.py").exists()

def test_commit_rejects_absolute_paths_outside_root(tmp_path, mock_console):
    root = tmp_path / "project"
    root.mkdir()
    writer = CommitWriter(root, Path("bak"), mock_console, MOCK_MAX_FILE_SIZE_BYTES)
    with pytest.raises(CommitError, match="escapes the project root"):
        writer.commit(FileArtifact(file_path=str(tmp_path / "elsewhere.py"), content="x"))

def test_commit_exceeds_size_limit(tmp_path, writer, mock_console):
    content = "A" * (MOCK_MAX_FILE_SIZE_BYTES + 1) # Content larger than limit
    with pytest.raises(CommitError, match=f"exceeds the {MOCK_MAX_FILE_SIZE_BYTES} byte size limit"):
        writer.commit(FileArtifact(file_path="large.txt", content=content))
    assert not (tmp_path / "large.txt").exists()
    mock_console.print.assert_called_with(f"[bold red]✗[/bold red] File content exceeds the {MOCK_MAX_FILE_SIZE_BYTES} byte size limit")

def test_commit_write_failure_becomes_commit_error(writer):
    with patch("builtins.open", side_effect=OSError("Disk full")):
        with pytest.raises(CommitError, match="Disk full") as exc_info:
            writer.commit(FileArtifact(file_path="a.py", content="x"))
    assert exc_info.value.file_path == "a.py"

def test_commit_unencodable_content_becomes_commit_error(tmp_path, writer):
    # A cut-off emoji leaves a lone surrogate behind.
    with pytest.raises(CommitError, match="not valid UTF-8") as exc_info:
        writer.commit(FileArtifact(file_path="a.py", content="# smile \ud83d"))
    assert exc_info.value.file_path == "a.py"
    assert not (tmp_path / "a.py").exists()
