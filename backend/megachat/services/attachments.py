"""
Attachment intake: turns a picked source into an attachment record.
"""

from typing import Optional

from ..schemas.message import Attachment, AttachmentSource, AttachmentType


SOURCE_TYPES = {
    AttachmentSource.GALLERY: AttachmentType.IMAGE,
    AttachmentSource.CAMERA: AttachmentType.IMAGE,
    AttachmentSource.DOCUMENT: AttachmentType.DOCUMENT,
    AttachmentSource.AUDIO: AttachmentType.AUDIO,
    AttachmentSource.LOCATION: AttachmentType.LOCATION,
    AttachmentSource.LIVE_LOCATION: AttachmentType.LIVE_LOCATION,
    AttachmentSource.CONTACT: AttachmentType.CONTACT,
    AttachmentSource.POLL: AttachmentType.POLL,
    AttachmentSource.EVENT: AttachmentType.EVENT,
    AttachmentSource.TEMPLATE: AttachmentType.TEMPLATE,
    AttachmentSource.FILE: AttachmentType.FILE,
}

SOURCE_LABELS = {
    AttachmentSource.GALLERY: "Gallery",
    AttachmentSource.CAMERA: "Camera",
    AttachmentSource.DOCUMENT: "Document",
    AttachmentSource.AUDIO: "Audio",
    AttachmentSource.LOCATION: "Location",
    AttachmentSource.LIVE_LOCATION: "Live Location",
    AttachmentSource.CONTACT: "Contact",
    AttachmentSource.POLL: "Poll",
    AttachmentSource.EVENT: "Event",
    AttachmentSource.TEMPLATE: "Template",
    AttachmentSource.FILE: "File",
}


def attachment_from_source(
    source: AttachmentSource,
    url: str = "#",
    label: Optional[str] = None
) -> Attachment:
    """Build the attachment an intake source hands to the conversation."""
    label = label or SOURCE_LABELS[source]
    return Attachment(type=SOURCE_TYPES[source], url=url, name=f"{label} Attachment")


def format_duration(seconds: int) -> str:
    """Format a recording length as m:ss."""
    minutes, secs = divmod(max(seconds, 0), 60)
    return f"{minutes}:{secs:02d}"


def voice_attachment(duration_seconds: int, url: str = "#") -> Attachment:
    return Attachment(
        type=AttachmentType.VOICE,
        url=url,
        name=f"Voice Message ({format_duration(duration_seconds)})"
    )
