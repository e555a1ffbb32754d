import re

_SEPARATORS_RE = re.compile(r"[_\-./\\]+")
_WHITESPACE_RE = re.compile(r"\s+")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


def normalize_text(value: object) -> str:
    """Lower-case, fold filename separators to spaces and collapse whitespace."""
    text = _SEPARATORS_RE.sub(" ", str(value or "").lower())
    return _WHITESPACE_RE.sub(" ", text).strip()


def compact_text(value: object) -> str:
    """Lower-case with every non-alphanumeric character removed."""
    return _NON_ALNUM_RE.sub("", str(value or "").lower())


def contains_word(text: str, phrase: str) -> bool:
    """True when `phrase` occurs in `text` not glued to other letters or digits."""
    pattern = rf"(?<![a-z0-9]){re.escape(phrase)}(?![a-z0-9])"
    return re.search(pattern, text) is not None


def count_keyword(text: str, keyword: str) -> int:
    """1 when `keyword` occurs in `text`, else 0.

    Keywords of four characters or fewer only match as a whole token, with an
    optional plural "s"; longer keywords match anywhere, so "rent roll" also
    hits "rent rolls".
    """
    if len(keyword) > 4:
        return 1 if keyword in text else 0
    pattern = rf"(?<![a-z0-9]){re.escape(keyword)}s?(?![a-z0-9])"
    return 1 if re.search(pattern, text) else 0
