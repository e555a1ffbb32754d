QUEUED = "queued"
EXTRACTING = "extracting"
UNDERWRITING = "underwriting"
SCORING = "scoring"
RENDERING = "rendering"
PDF_GENERATING = "pdf_generating"
PUBLISHING = "publishing"
PUBLISHED = "published"
NEEDS_DOCUMENTS = "needs_documents"
FAILED = "failed"

ALL_STATUSES = (
    QUEUED,
    EXTRACTING,
    UNDERWRITING,
    SCORING,
    RENDERING,
    PDF_GENERATING,
    PUBLISHING,
    PUBLISHED,
    NEEDS_DOCUMENTS,
    FAILED,
)
TERMINAL_STATUSES = frozenset({PUBLISHED, FAILED})
IN_PROGRESS_STATUSES = (EXTRACTING, UNDERWRITING, SCORING, RENDERING, PDF_GENERATING, PUBLISHING)

# Order in which a driver pass visits source statuses.
STAGE_ORDER = (
    QUEUED,
    EXTRACTING,
    UNDERWRITING,
    SCORING,
    RENDERING,
    PDF_GENERATING,
    PUBLISHING,
    NEEDS_DOCUMENTS,
)

LEGAL_EDGES: frozenset[tuple[str, str]] = frozenset(
    {
        (QUEUED, EXTRACTING),
        (EXTRACTING, UNDERWRITING),
        (EXTRACTING, NEEDS_DOCUMENTS),
        (UNDERWRITING, SCORING),
        (SCORING, RENDERING),
        (RENDERING, PDF_GENERATING),
        (RENDERING, NEEDS_DOCUMENTS),
        (PDF_GENERATING, PUBLISHING),
        (PUBLISHING, PUBLISHED),
        (NEEDS_DOCUMENTS, QUEUED),
    }
    | {(status, FAILED) for status in ALL_STATUSES if status not in TERMINAL_STATUSES}
)


def is_legal_transition(from_status: str, to_status: str) -> bool:
    return (from_status, to_status) in LEGAL_EDGES
