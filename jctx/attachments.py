"""Attachment download policy.

Two profiles:

- ``UNIFIED``: attachments are saved to the sandbox for the chat sink. Anything
  under the 5 MiB ceiling is saved verbatim; MIME type only annotates.
- ``INLINE``: one self-contained document. Text-like files under 5 MiB are
  inlined, images and documents under 2 MiB are noted by URL, everything else
  is noted with its size and left unfetched.
"""

from enum import Enum

from jctx.models import AttachmentDecision, AttachmentDescriptor

MiB = 1024 * 1024

UNIFIED_MAX_BYTES = 5 * MiB
TEXT_MAX_BYTES = 5 * MiB
BINARY_MAX_BYTES = 2 * MiB

SANDBOX_DIRNAME = ".jira-context"

_TEXT_MIME_MARKERS = ("text/", "application/json", "application/yaml", "application/yml", "xml")
_TEXT_EXTENSIONS = (".md", ".txt", ".json", ".yaml", ".yml", ".xml")
_DOCUMENT_MIME_MARKERS = ("application/pdf", "application/msword", "application/vnd.openxmlformats")


class Profile(str, Enum):
    UNIFIED = "unified"
    INLINE = "inline"


class Category(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    DOCUMENT = "document"
    OTHER = "other"


def category(descriptor: AttachmentDescriptor) -> Category:
    mime = descriptor.mime_type.lower()
    name = descriptor.filename.lower()
    if any(marker in mime for marker in _TEXT_MIME_MARKERS) or name.endswith(_TEXT_EXTENSIONS):
        return Category.TEXT
    if mime.startswith("image/"):
        return Category.IMAGE
    if any(marker in mime for marker in _DOCUMENT_MIME_MARKERS):
        return Category.DOCUMENT
    return Category.OTHER


def classify(descriptor: AttachmentDescriptor, profile: Profile = Profile.UNIFIED) -> AttachmentDecision:
    if profile is Profile.UNIFIED:
        if descriptor.size < UNIFIED_MAX_BYTES:
            return AttachmentDecision.DOWNLOAD_TO_DISK
        return AttachmentDecision.SKIP_TOO_LARGE

    match category(descriptor):
        case Category.TEXT:
            if descriptor.size < TEXT_MAX_BYTES:
                return AttachmentDecision.DOWNLOAD_AS_TEXT
            return AttachmentDecision.SKIP_TOO_LARGE
        case Category.IMAGE | Category.DOCUMENT:
            if descriptor.size < BINARY_MAX_BYTES:
                return AttachmentDecision.DOWNLOAD_AS_BINARY_NOTE
            return AttachmentDecision.SKIP_TOO_LARGE
        case _:
            return AttachmentDecision.SKIP_UNSUPPORTED


def size_label(size: int) -> str:
    """Human size the way the context document prints it: KB below 1 MiB, MB above."""
    if size >= MiB:
        return f"{round(size / MiB)} MB"
    return f"{round(size / 1024)} KB"
