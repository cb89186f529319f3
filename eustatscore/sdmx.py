"""Lenient extraction of dimensions and codelists from SDMX-ML structure documents.

The documents are scanned as a flat stream of tags and text rather than
parsed against the SDMX schema. Only the shapes listed below are recognized;
anything else (unknown elements, attributes, namespace prefixes, annotations)
is skipped, and unbalanced markup does not abort the scan.

    <Dataflow><Name xml:lang="en">...</Name></Dataflow>
    <Dimension id="geo"><ConceptIdentity><Ref id="GEO"/></ConceptIdentity>
        <LocalRepresentation><Enumeration><Ref id="GEO"/></Enumeration></LocalRepresentation>
    </Dimension>
    <TimeDimension id="TIME_PERIOD"/>
    <Codelist id="GEO"><Code id="DE"><Name xml:lang="en">Germany</Name></Code></Codelist>
    <Concept id="geo"><Name xml:lang="en">Geopolitical entity</Name></Concept>
"""

import html
import re
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, NamedTuple, Optional, Tuple

START = "start"
END = "end"
TEXT = "text"

_MARKUP_RE = re.compile(
    r"<!--.*?-->"
    r"|<!\[CDATA\[(?P<cdata>.*?)\]\]>"
    r"|<\?.*?\?>"
    r"|<!.*?>"
    r"|<(?P<close>/)?(?P<name>[^\s/>]+)(?P<attrs>[^>]*?)(?P<empty>/)?>",
    re.DOTALL,
)
_ATTR_RE = re.compile(r"""([^\s=]+)\s*=\s*(?:"([^"]*)"|'([^']*)')""")


class Token(NamedTuple):
    kind: str
    name: str = ""
    attrs: Optional[Dict[str, str]] = None
    text: str = ""


def _local_name(name: str) -> str:
    return name.rsplit(":", 1)[-1]


def _parse_attrs(raw: str) -> Dict[str, str]:
    attrs = {}
    for key, double, single in _ATTR_RE.findall(raw):
        attrs[key] = html.unescape(double or single)
    return attrs


def tokenize(text: str) -> Iterator[Token]:
    """
    Yield start, end and text tokens for an XML-like document.

    Tag names lose their namespace prefix. Self-closing tags yield a start
    token immediately followed by an end token. Comments, processing
    instructions and declarations are dropped; CDATA sections become text.
    """
    pos = 0
    for match in _MARKUP_RE.finditer(text):
        if match.start() > pos:
            chunk = text[pos:match.start()]
            if chunk.strip():
                yield Token(TEXT, text=html.unescape(chunk))
        pos = match.end()

        if match.group("cdata") is not None:
            yield Token(TEXT, text=match.group("cdata"))
            continue
        name = match.group("name")
        if name is None:
            continue

        local = _local_name(name)
        if match.group("close"):
            yield Token(END, local)
            continue
        yield Token(START, local, _parse_attrs(match.group("attrs")))
        if match.group("empty"):
            yield Token(END, local)

    tail = text[pos:]
    if tail.strip():
        yield Token(TEXT, text=html.unescape(tail))


def _lang_of(attrs: Dict[str, str]) -> Optional[str]:
    for key, value in attrs.items():
        if _local_name(key) == "lang":
            return value.lower()
    return None


@dataclass
class StructureDocument:
    """Raw pieces recovered from a structure document, before joining."""
    title: Optional[str] = None
    dataflow_title: Optional[str] = None
    dimension_codelists: Dict[str, str] = field(default_factory=dict)
    dimension_concepts: Dict[str, str] = field(default_factory=dict)
    time_dimension: Optional[str] = None
    codelists: Dict[str, List[Tuple[str, str]]] = field(default_factory=dict)
    concept_names: Dict[str, str] = field(default_factory=dict)

    def concept_name(self, dimension_id: str) -> Optional[str]:
        """Look up a dimension's display name, ignoring case."""
        for key in (self.dimension_concepts.get(dimension_id), dimension_id):
            if key and key.lower() in self.concept_names:
                return self.concept_names[key.lower()]
        return None


class _Scanner:
    """Single pass over the token stream that fills a :class:`StructureDocument`."""

    def __init__(self, lang: str):
        self.lang = lang.lower()
        self.doc = StructureDocument()
        self.stack: List[Tuple[str, Dict[str, str]]] = []
        self.name_buffer: Optional[List[str]] = None
        self.codelist: Optional[List[Tuple[str, str]]] = None
        self.code: Optional[List[Optional[str]]] = None  # [id, label]

    def _inside(self, name: str) -> Optional[Dict[str, str]]:
        for tag, attrs in reversed(self.stack):
            if tag == name:
                return attrs
        return None

    def start(self, name: str, attrs: Dict[str, str]) -> None:
        ident = attrs.get("id")
        if name == "Dimension" and ident:
            self.doc.dimension_codelists.setdefault(ident, "")
        elif name == "TimeDimension" and ident and self.doc.time_dimension is None:
            self.doc.time_dimension = ident
        elif name == "Codelist" and ident:
            self.codelist = self.doc.codelists.setdefault(ident, [])
        elif name == "Code" and ident and self.codelist is not None:
            self.code = [ident, None]
        elif name == "Ref" and ident:
            self._ref(ident)
        elif name == "Name" and _lang_of(attrs) == self.lang:
            self.name_buffer = []
        self.stack.append((name, attrs))

    def _ref(self, ident: str) -> None:
        dimension = self._inside("Dimension")
        if dimension is None or not dimension.get("id"):
            return
        dim_id = dimension["id"]
        if self._inside("LocalRepresentation") is not None:
            if not self.doc.dimension_codelists.get(dim_id):
                self.doc.dimension_codelists[dim_id] = ident
        elif self._inside("ConceptIdentity") is not None:
            self.doc.dimension_concepts.setdefault(dim_id, ident)

    def text(self, text: str) -> None:
        if self.name_buffer is not None:
            self.name_buffer.append(text)

    def end(self, name: str) -> None:
        # Close the nearest open element of that name; stray end tags are ignored.
        for depth in range(len(self.stack) - 1, -1, -1):
            if self.stack[depth][0] == name:
                break
        else:
            return

        if name == "Name" and self.name_buffer is not None:
            owner = self.stack[depth - 1] if depth > 0 else (None, {})
            self._name(owner, "".join(self.name_buffer).strip())
            self.name_buffer = None
        elif name == "Code" and self.code is not None:
            code_id, label = self.code
            self.codelist.append((code_id, label or code_id))
            self.code = None
        elif name == "Codelist":
            self.codelist = None
        del self.stack[depth:]

    def _name(self, owner: Tuple[Optional[str], Dict[str, str]], label: str) -> None:
        tag, attrs = owner
        if self.doc.title is None and label:
            self.doc.title = label

        if tag == "Dataflow" and self.doc.dataflow_title is None:
            self.doc.dataflow_title = label
        elif tag == "Code" and self.code is not None and self.code[1] is None:
            self.code[1] = label
        elif tag == "Concept" and attrs.get("id"):
            self.doc.concept_names.setdefault(attrs["id"].lower(), label)


def parse_structure_document(text: str, lang: str = "en") -> StructureDocument:
    """
    Extract title, dimensions, codelists and concepts from a structure document.

    Args:
        text: SDMX-ML structure (or codelist) document
        lang: Language of the ``Name`` elements to keep

    Returns:
        StructureDocument with the recognized pieces; missing pieces stay empty
    """
    scanner = _Scanner(lang)
    for token in tokenize(text):
        if token.kind == START:
            scanner.start(token.name, token.attrs)
        elif token.kind == END:
            scanner.end(token.name)
        else:
            scanner.text(token.text)
    return scanner.doc
