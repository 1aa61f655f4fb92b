from apicize_extract.core.classify import RequestClassifier
from apicize_extract.core.extract import (
    TestExtractionError,
    extract_and_validate,
    extract_files,
    extract_from_file,
    extract_from_source,
)
from apicize_extract.core.metadata import (
    FILE_METADATA_END,
    FILE_METADATA_START,
    GROUP_METADATA_END,
    GROUP_METADATA_START,
    METADATA_MARKERS,
    REQUEST_METADATA_END,
    REQUEST_METADATA_START,
    MetadataExtraction,
    extract_metadata,
    find_metadata_by_id,
)
from apicize_extract.core.source import SourceText
from apicize_extract.core.stats import compute_stats, iter_blocks

__all__ = [
    "FILE_METADATA_END",
    "FILE_METADATA_START",
    "GROUP_METADATA_END",
    "GROUP_METADATA_START",
    "METADATA_MARKERS",
    "REQUEST_METADATA_END",
    "REQUEST_METADATA_START",
    "MetadataExtraction",
    "RequestClassifier",
    "SourceText",
    "TestExtractionError",
    "compute_stats",
    "extract_and_validate",
    "extract_files",
    "extract_from_file",
    "extract_from_source",
    "extract_metadata",
    "find_metadata_by_id",
    "iter_blocks",
]
