import re

DEFAULT_TITLE = "Untitled Document"
MAX_TITLE_LENGTH = 255

_HEADING_MARKER = re.compile(r"^#+\s*")


def extract_title_from_markdown(body: str) -> str:
    """Первый непустой заголовок markdown или "Untitled Document" """
    if not body or not body.strip():
        return DEFAULT_TITLE
    
    for line in body.split("\n"):
        stripped = line.strip()
        if stripped.startswith("#"):
            title = _HEADING_MARKER.sub("", stripped).strip()
            if title:
                return title[:MAX_TITLE_LENGTH]
    
    return DEFAULT_TITLE
