from __future__ import annotations

from selectolax.parser import HTMLParser


def delete_tags(fragment: str) -> str:
    """Turn an HTML fragment into plain text.

    Markup is dropped and entities are decoded by the parser; the text lines
    are then trimmed and joined without separator and non-ASCII characters are
    removed.
    """
    if not fragment or not fragment.strip():
        return ""
    tree = HTMLParser(fragment)
    root = tree.body if tree.body is not None else tree.root
    text = root.text() if root is not None else ""
    text = "".join(line.strip() for line in text.splitlines())
    return "".join(ch for ch in text if ch.isascii())
