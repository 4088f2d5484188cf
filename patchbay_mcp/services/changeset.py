"""Change-set document parsing.

A change-set describes file operations to apply to a project tree::

    <code_changes>
      <changed_files>
        <file>
          <file_summary>Add greeting helper</file_summary>
          <file_operation>CREATE</file_operation>
          <file_path>src/greet.py</file_path>
          <file_code><![CDATA[def greet(): ...]]></file_code>
        </file>
      </changed_files>
    </code_changes>

Text around the ``<code_changes>`` block (prose, markdown fences) is
ignored. File content is kept exactly as written in the document.
"""

import logging
import re
import xml.etree.ElementTree as ET

from patchbay_mcp.models import FileOperation, OperationKind
from patchbay_mcp.services.errors import MalformedDocument

logger = logging.getLogger(__name__)

_BLOCK_PATTERN = re.compile(r"<code_changes\b.*</code_changes\s*>", re.DOTALL)


def _extract_block(text: str) -> str:
    """Cut the outermost <code_changes> block out of surrounding text."""
    match = _BLOCK_PATTERN.search(text)
    if match:
        return match.group(0)
    return text.strip()


def _child_text(element: ET.Element, tag: str) -> str | None:
    """Return the text of a direct child, "" for an empty child, None if absent."""
    child = element.find(tag)
    if child is None:
        return None
    return child.text or ""


def _parse_kind(token: str | None, index: int) -> OperationKind:
    if token is None or not token.strip():
        raise MalformedDocument(f"File entry {index} has no file_operation")
    try:
        return OperationKind(token.strip().upper())
    except ValueError as e:
        raise MalformedDocument(
            f"File entry {index} has unknown file_operation {token.strip()!r}"
        ) from e


def parse_change_set(text: str) -> list[FileOperation]:
    """Parse change-set text into file operations in document order.

    Args:
        text: Change-set document, possibly wrapped in other text

    Returns:
        Operations in the order they appear

    Raises:
        MalformedDocument: If the XML is invalid, ``changed_files`` is
            missing, or any file entry lacks a kind, a path, or (for
            CREATE/UPDATE) content. Nothing is returned on failure.
    """
    if not text or not text.strip():
        raise MalformedDocument("Change-set document is empty")

    try:
        root = ET.fromstring(_extract_block(text))
    except ET.ParseError as e:
        raise MalformedDocument(f"Invalid XML in change-set: {e}") from e

    changed_files = root if root.tag == "changed_files" else root.find("changed_files")
    if changed_files is None:
        raise MalformedDocument("Invalid XML format. Could not find changed_files.")

    operations: list[FileOperation] = []
    for index, file_element in enumerate(changed_files.findall("file"), start=1):
        kind = _parse_kind(_child_text(file_element, "file_operation"), index)

        path = (_child_text(file_element, "file_path") or "").strip()
        if not path:
            raise MalformedDocument(f"File entry {index} has no file_path")

        code_element = file_element.find("file_code")
        if code_element is not None and len(code_element):
            raise MalformedDocument(
                f"file_code for {path} contains unescaped markup; wrap it in CDATA"
            )
        content = _child_text(file_element, "file_code")
        if kind.requires_content and content is None:
            raise MalformedDocument(
                f"No file_code provided for {kind.value} operation on {path}"
            )

        operations.append(
            FileOperation(
                kind=kind,
                path=path,
                content=content if kind.requires_content else None,
                summary=(_child_text(file_element, "file_summary") or "").strip(),
            )
        )

    logger.debug("Parsed %d file operation(s) from change-set", len(operations))
    return operations
