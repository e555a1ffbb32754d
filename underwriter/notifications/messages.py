from dataclasses import dataclass

_DOC_LABELS = {"rent_roll": "rent roll", "t12": "T12 operating statement"}


@dataclass(frozen=True)
class EmailMessage:
    subject: str
    text: str


def needs_documents_message(
    property_name: str | None, missing: list[dict[str, str]]
) -> EmailMessage:
    """Email asking the owner to upload the documents listed in `missing`."""
    subject_name = property_name or "your property"
    lines = []
    for item in missing:
        label = _DOC_LABELS.get(item["doc_type"], item["doc_type"])
        if item["reason"] == "unreadable":
            lines.append(f"- {label}: we could not read the file you uploaded")
        else:
            lines.append(f"- {label}: not uploaded yet")
    text = (
        f"We need more documents before we can underwrite {subject_name}.\n\n"
        + "\n".join(lines)
        + "\n\nUpload them to your existing request and processing resumes automatically."
    )
    return EmailMessage(subject=f"Documents needed for {subject_name}", text=text)


def report_ready_message(property_name: str | None, report_id: str | None) -> EmailMessage:
    subject_name = property_name or "your property"
    text = f"Your underwriting report for {subject_name} is ready."
    if report_id:
        text += f"\n\nReport reference: {report_id}"
    return EmailMessage(subject=f"Your report for {subject_name} is ready", text=text)
