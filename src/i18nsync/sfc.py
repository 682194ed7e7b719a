import re

from i18nsync.classes import Section, SfcSections

_MODULE_MARKER = r"""(?:context\s*=\s*["']module["']|\smodule(?=[\s/>=]))"""

MODULE_SCRIPT_RE = re.compile(
    rf"<script\b(?=[^>]*{_MODULE_MARKER})([^>]*)>([\s\S]*?)</script>", re.I
)
SCRIPT_RE = re.compile(
    rf"<script\b(?![^>]*{_MODULE_MARKER})([^>]*)>([\s\S]*?)</script>", re.I
)
ANY_SCRIPT_RE = re.compile(r"<script\b[^>]*>[\s\S]*?</script>", re.I)
STYLE_RE = re.compile(r"<style\b([^>]*)>([\s\S]*?)</style>", re.I)
TS_LANG_RE = re.compile(r"""\blang\s*=\s*["']ts["']""")


def _section(m: re.Match | None, detect_lang: bool = True) -> Section | None:
    if m is None:
        return None
    lang = "ts" if detect_lang and TS_LANG_RE.search(m.group(1)) else None
    return Section(m.group(2), m.start(), m.end(), m.start(2), lang)


def split_sections(text: str) -> SfcSections:
    template = STYLE_RE.sub("", ANY_SCRIPT_RE.sub("", text))
    return SfcSections(
        module_script=_section(MODULE_SCRIPT_RE.search(text)),
        script=_section(SCRIPT_RE.search(text)),
        template=Section(template, 0, len(text)) if template.strip() else None,
        style=_section(STYLE_RE.search(text), detect_lang=False),
    )


def _blank(m: re.Match) -> str:
    return re.sub(r"[^\n]", " ", m.group(0))


def mask_blocks(text: str) -> str:
    """Blank out script and style blocks, keeping every offset in place."""
    return STYLE_RE.sub(_blank, ANY_SCRIPT_RE.sub(_blank, text))
