"""Tests for change-set parsing."""

import pytest

from patchbay_mcp.models import FileOperation, OperationKind
from patchbay_mcp.services.changeset import parse_change_set
from patchbay_mcp.services.errors import ErrorKind, MalformedDocument

DOCUMENT = """Here are the changes you asked for:

```xml
<code_changes>
  <changed_files>
    <file>
      <file_summary>Add greeting helper</file_summary>
      <file_operation>CREATE</file_operation>
      <file_path>src/greet.py</file_path>
      <file_code><![CDATA[def greet(name):
    return f"<b>{name}</b> & co"
]]></file_code>
    </file>
    <file>
      <file_summary>Bump version</file_summary>
      <file_operation>update</file_operation>
      <file_path> pyproject.toml </file_path>
      <file_code><![CDATA[version = "2.0"
]]></file_code>
    </file>
    <file>
      <file_summary>Remove old module</file_summary>
      <file_operation>DELETE</file_operation>
      <file_path>src/legacy.py</file_path>
    </file>
  </changed_files>
</code_changes>
```

Let me know if you need anything else.
"""


def wrap(*files: str) -> str:
    """Build a change-set document from raw <file> bodies."""
    body = "".join(f"<file>{f}</file>" for f in files)
    return f"<code_changes><changed_files>{body}</changed_files></code_changes>"


def test_parse_change_set_in_document_order() -> None:
    """Operations come back in order with surrounding prose ignored."""
    operations = parse_change_set(DOCUMENT)

    assert [(op.kind, op.path) for op in operations] == [
        (OperationKind.CREATE, "src/greet.py"),
        (OperationKind.UPDATE, "pyproject.toml"),
        (OperationKind.DELETE, "src/legacy.py"),
    ]
    assert operations[0].summary == "Add greeting helper"


def test_parse_change_set_keeps_content_verbatim() -> None:
    """CDATA content keeps markup characters and indentation untouched."""
    create = parse_change_set(DOCUMENT)[0]

    assert create.content == 'def greet(name):\n    return f"<b>{name}</b> & co"\n'


def test_delete_has_no_content() -> None:
    """DELETE operations never carry content, even if a file_code is present."""
    operations = parse_change_set(
        wrap(
            "<file_operation>DELETE</file_operation>"
            "<file_path>a.txt</file_path>"
            "<file_code>ignored</file_code>"
        )
    )

    assert operations == [FileOperation(kind=OperationKind.DELETE, path="a.txt")]


def test_empty_file_code_is_empty_content() -> None:
    """An empty file_code element creates an empty file."""
    [operation] = parse_change_set(
        wrap(
            "<file_operation>CREATE</file_operation>"
            "<file_path>pkg/__init__.py</file_path>"
            "<file_code></file_code>"
        )
    )

    assert operation.content == ""


def test_bare_changed_files_root_is_accepted() -> None:
    """A document rooted at changed_files parses the same way."""
    text = (
        "<changed_files><file>"
        "<file_operation>DELETE</file_operation><file_path>x</file_path>"
        "</file></changed_files>"
    )

    assert [op.path for op in parse_change_set(text)] == ["x"]


def test_no_file_entries_is_empty_list() -> None:
    """A changed_files element without files yields no operations."""
    assert parse_change_set(wrap()) == []


@pytest.mark.parametrize(
    ("text", "message"),
    [
        ("", "empty"),
        ("   \n", "empty"),
        ("<code_changes><changed_files>", "Invalid XML"),
        ("<code_changes><notes/></code_changes>", "Could not find changed_files"),
        (
            wrap("<file_path>a</file_path><file_code>x</file_code>"),
            "no file_operation",
        ),
        (
            wrap("<file_operation>RENAME</file_operation><file_path>a</file_path>"),
            "unknown file_operation 'RENAME'",
        ),
        (
            wrap("<file_operation>CREATE</file_operation><file_code>x</file_code>"),
            "no file_path",
        ),
        (
            wrap("<file_operation>UPDATE</file_operation><file_path>a.py</file_path>"),
            "No file_code provided for UPDATE operation on a.py",
        ),
        (
            wrap(
                "<file_operation>CREATE</file_operation><file_path>a.html</file_path>"
                "<file_code><div>hi</div></file_code>"
            ),
            "wrap it in CDATA",
        ),
    ],
)
def test_malformed_documents_are_rejected(text: str, message: str) -> None:
    """Structural problems raise MalformedDocument with a useful message."""
    with pytest.raises(MalformedDocument, match=message) as exc_info:
        parse_change_set(text)

    assert exc_info.value.kind is ErrorKind.MALFORMED_DOCUMENT


def test_one_bad_entry_rejects_whole_document() -> None:
    """Parsing is all-or-nothing."""
    text = wrap(
        "<file_operation>CREATE</file_operation><file_path>ok.txt</file_path>"
        "<file_code>fine</file_code>",
        "<file_operation>CREATE</file_operation><file_path>bad.txt</file_path>",
    )

    with pytest.raises(MalformedDocument, match="bad.txt"):
        parse_change_set(text)
