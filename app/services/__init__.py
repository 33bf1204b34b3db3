"""Service layer: audio intake, blob storage wiring, export and phrase import."""

from .audio_normalizer import AudioNormalizer
from .export import ExportReporter
from .phrase_import import ImportReport, import_phrases, load_phrase_file
from .storage import build_blob_store
from .submission_recorder import SubmissionRecorder

__all__ = [
    "AudioNormalizer",
    "ExportReporter",
    "ImportReport",
    "SubmissionRecorder",
    "build_blob_store",
    "import_phrases",
    "load_phrase_file",
]
