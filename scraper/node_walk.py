"""Walk the siblings that follow a node as a stream of text tokens."""
from enum import Enum
from typing import Callable, Iterator, List, Tuple

from bs4 import Comment, NavigableString, PageElement, Tag


class NodeKind(str, Enum):
    TEXT = 'text'
    BREAK = 'break'


Token = Tuple[NodeKind, str]


def is_tag(*names: str) -> Callable[[PageElement], bool]:
    """Boundary predicate matching elements with any of the given tag names."""
    wanted = {name.lower() for name in names}
    return lambda node: isinstance(node, Tag) and node.name.lower() in wanted


def iter_sibling_tokens(
    start: PageElement, stop: Callable[[PageElement], bool]
) -> Iterator[Token]:
    """
    Yield (kind, text) tokens for the siblings after ``start``.

    Text nodes and inline elements yield their stripped text, ``<br>``
    yields a BREAK token. Iteration ends before the first sibling for
    which ``stop`` returns True. Comments and empty text are skipped.
    """
    for node in start.next_siblings:
        if stop(node):
            return
        if isinstance(node, Comment):
            continue
        if isinstance(node, NavigableString):
            text = ' '.join(node.split())
            if text:
                yield NodeKind.TEXT, text
        elif isinstance(node, Tag):
            if node.name.lower() == 'br':
                yield NodeKind.BREAK, '\n'
                continue
            yield from _inline_tokens(node)


def _inline_tokens(tag: Tag) -> Iterator[Token]:
    for child in tag.children:
        if isinstance(child, Comment):
            continue
        if isinstance(child, NavigableString):
            text = ' '.join(child.split())
            if text:
                yield NodeKind.TEXT, text
        elif isinstance(child, Tag):
            if child.name.lower() == 'br':
                yield NodeKind.BREAK, '\n'
            else:
                yield from _inline_tokens(child)


def tokens_to_lines(tokens: Iterator[Token]) -> List[str]:
    """Join TEXT tokens with spaces, splitting into lines on BREAK tokens."""
    lines: List[str] = []
    current: List[str] = []
    for kind, text in tokens:
        if kind is NodeKind.BREAK:
            lines.append(' '.join(current))
            current = []
        else:
            current.append(text)
    lines.append(' '.join(current))
    return [line.strip() for line in lines if line.strip()]
