import re


FENCE = "```"

_FENCE_LINE = re.compile(r"^[ \t]*```[ \t]*([\w+#.-]*)[^\n]*$", re.MULTILINE)
_LANG_TAG = re.compile(r"[\w+#.-]*")
_BLOCK_MARKER = re.compile(r"([.!?:])[ \t]*(#{1,6}[ \t]|[-*+][ \t]|(\d{1,3})\.[ \t]+(?=[^\W\d]))")


def _trim_newline(text: str) -> str:
    if text.startswith("\n"):
        text = text[1:]
    if text.endswith("\n"):
        text = text[:-1]
    return text


def split_markdown_fences(md_text: str) -> list[tuple[str, str, str]]:
    """
    Split Markdown into (kind, lang, text) segments, kind being "md" or "code".
    Only fences that sit on their own line count; an unclosed fence and whatever
    follows it stay Markdown.
    """
    raw = md_text or ""
    segments: list[tuple[str, str, str]] = []

    def add_md(chunk: str) -> None:
        if chunk.strip():
            segments.append(("md", "", chunk.strip("\n")))

    pos = 0
    opening = None
    for m in _FENCE_LINE.finditer(raw):
        if opening is None:
            add_md(raw[pos:m.start()])
            opening = m
        else:
            segments.append(("code", opening.group(1), _trim_newline(raw[opening.end():m.start()])))
            opening = None
        pos = m.end()

    add_md(raw[opening.start():] if opening is not None else raw[pos:])
    return segments


def normalize_markdown(text: str) -> str:
    """
    Put headings, bullets and numbered items that a model ran onto the end of a
    sentence back on their own line. Emphasis and inline code are left alone.

    Only markers right after sentence punctuation (.!?:) are moved; a "-" in the
    middle of a sentence is indistinguishable from a dash and stays inline.
    A number counts as a list item only when it starts a list (1.) or follows
    the previous item, and a word comes after it.
    """
    if not text:
        return ""
    last_item = 0

    def split_line(m: re.Match) -> str:
        nonlocal last_item
        if m.group(3) is not None:
            n = int(m.group(3))
            continues = n == last_item + 1 or re.search(rf"(?m)^[ \t]*{n - 1}\.[ \t]", text)
            if n != 1 and not continues:
                return m.group(0)
            last_item = n
        return f"{m.group(1)}\n{m.group(2)}"

    return _BLOCK_MARKER.sub(split_line, text)


class MarkdownAccumulator:
    """
    Builds the persisted assistant text from streamed content fragments.

    Prose is normalized with normalize_markdown; fenced code is kept verbatim and
    written out together with its fence (and language tag) once the closing
    marker arrives. A marker split across fragments is still recognised. The
    language tag is taken only from an identifier right after the opening fence.
    """

    def __init__(self):
        self._parts: list[str] = []
        self._prose: list[str] = []
        self._code: list[str] = []
        self._lang = ""
        self._in_code = False
        self._reading_lang = False
        self._carry = ""

    @property
    def in_code_block(self) -> bool:
        return self._in_code

    def feed(self, chunk: str) -> None:
        text = self._carry + (chunk or "")
        self._carry = ""
        head = text.rstrip("`")
        if 0 < len(text) - len(head) < 3:
            self._carry = text[len(head):]
            text = head

        pieces = text.split(FENCE)
        self._consume(pieces[0])
        for piece in pieces[1:]:
            self._toggle()
            self._consume(piece)

    def finish(self) -> str:
        if self._carry:
            self._consume(self._carry)
            self._carry = ""
        if self._in_code:
            self._flush_code(closed=False)
        self._flush_prose()
        return "".join(self._parts)

    def _consume(self, text: str) -> None:
        if not text:
            return
        if not self._in_code:
            self._prose.append(text)
            return
        if self._reading_lang:
            head, newline, text = text.partition("\n")
            self._lang += head
            if not newline:
                return
            self._reading_lang = False
            if not _LANG_TAG.fullmatch(self._lang.strip()):
                self._code.append(self._lang + "\n")
                self._lang = ""
        if text:
            self._code.append(text)

    def _toggle(self) -> None:
        if self._in_code:
            self._flush_code(closed=True)
            return
        self._flush_prose()
        self._in_code = True
        self._reading_lang = True
        self._lang = ""
        self._code = []

    def _flush_prose(self) -> None:
        if self._prose:
            self._parts.append(normalize_markdown("".join(self._prose)))
            self._prose = []

    def _flush_code(self, *, closed: bool) -> None:
        if self._reading_lang:
            # fence opened and closed on one line: an inline span, kept as written
            block = f"{FENCE}{self._lang}{FENCE if closed else ''}"
        else:
            body = "".join(self._code).strip("\n")
            block = f"{FENCE}{self._lang.strip()}\n{body}"
            if closed:
                block += f"\n{FENCE}"
        self._parts.append(block)
        self._in_code = False
        self._reading_lang = False
        self._lang = ""
        self._code = []
