"""
Card content markup.

A card stores its sections in one text field, one line per section::

    RÉGION|inline|italic: Boquete
    Notes|font=Lora|size=large: grown at altitude

The text before the first ``:`` is the label followed by style markers, the
rest is the body. A line without ``:`` continues the previous section.
``encode_sections`` and ``decode_sections`` convert between that string and
a list of ``Section`` values.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional

LAYOUTS = ("block", "inline")
FONT_SIZES = ("small", "base", "large", "xl")

DEFAULT_LAYOUT = "block"
DEFAULT_FONT_SIZE = "base"

# Flags must end at the next marker or at the end of the label region, so
# "|boldface" stays literal text.
_MARKER_RE = re.compile(
    r"\|(?:(?P<flag>inline|italic|bold)(?=\||\s*$)|(?P<key>font|size)=(?P<value>[^|]*))"
)
_RESERVED_RE = re.compile(r"[:|]")


@dataclass
class Section:
    label: str = ""
    content: str = ""
    layout: str = DEFAULT_LAYOUT
    font_family: Optional[str] = None
    font_size: str = DEFAULT_FONT_SIZE
    italic: bool = False
    bold: bool = False

    def to_dict(self) -> dict:
        return {
            "label": self.label,
            "content": self.content,
            "layout": self.layout,
            "font_family": self.font_family,
            "font_size": self.font_size,
            "italic": self.italic,
            "bold": self.bold,
        }


def _collapse(text: Optional[str]) -> str:
    return " ".join((text or "").split())


def _clean_label(label: Optional[str]) -> str:
    return _collapse(_RESERVED_RE.sub(" ", label or ""))


def _clean_content(content: Optional[str]) -> str:
    lines = (line.strip() for line in (content or "").split("\n"))
    return " ".join(line for line in lines if line)


def _markers(section: Section, default_font: Optional[str]) -> str:
    markers = []
    if section.layout == "inline":
        markers.append("|inline")
    font = _clean_label(section.font_family)
    if font and font != default_font:
        markers.append(f"|font={font}")
    if section.font_size in FONT_SIZES and section.font_size != DEFAULT_FONT_SIZE:
        markers.append(f"|size={section.font_size}")
    if section.italic:
        markers.append("|italic")
    if section.bold:
        markers.append("|bold")
    return "".join(markers)


# PUBLIC_INTERFACE
def encode_sections(sections: Iterable[Section], default_font: Optional[str] = None) -> str:
    """
    Serialize ``sections`` into the stored content string.

    Sections with neither label nor content are dropped. Markers are written
    in a fixed order (inline, font, size, italic, bold) and only when they
    differ from the defaults, so encoding the same sections twice gives the
    same bytes. A ``font_family`` equal to ``default_font`` is omitted.
    """
    lines = []
    for section in sections:
        label = _clean_label(section.label)
        content = _clean_content(section.content)
        if not label and not content:
            continue
        lines.append(f"{label}{_markers(section, default_font)}: {content}")
    return "\n".join(lines)


def _parse_label(region: str) -> Section:
    section = Section()

    def strip_marker(match):
        flag = match.group("flag")
        if flag == "inline":
            section.layout = "inline"
            return ""
        if flag == "italic":
            section.italic = True
            return ""
        if flag == "bold":
            section.bold = True
            return ""

        value = match.group("value").strip()
        if match.group("key") == "font":
            if not value:
                return match.group(0)
            if section.font_family is None:
                section.font_family = value
            return ""
        if value not in FONT_SIZES:
            return match.group(0)
        section.font_size = value
        return ""

    section.label = _MARKER_RE.sub(strip_marker, region).strip()
    return section


# PUBLIC_INTERFACE
def decode_sections(text: Optional[str]) -> List[Section]:
    """
    Parse a stored content string back into sections.

    Never raises: markers that cannot be parsed stay in the label as plain
    text, and lines without ``:`` seen before the first section are dropped.
    """
    sections: List[Section] = []
    current: Optional[Section] = None

    for raw in (text or "").split("\n"):
        line = raw.strip()
        if not line:
            continue

        if ":" in line:
            if current is not None:
                sections.append(current)
            region, _, body = line.partition(":")
            current = _parse_label(region)
            current.content = body.strip()
        elif current is not None:
            current.content = f"{current.content} {line}"

    if current is not None:
        sections.append(current)
    return sections
