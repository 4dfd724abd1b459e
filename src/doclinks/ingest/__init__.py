from .python_ingest import (
    BlockKind,
    DocBlock,
    ParseFailureWitness,
    PythonDocIngestCarrier,
    extract_doc_blocks,
    ingest_python_file,
    ingest_python_source,
    iter_python_paths,
)
from .source_map import SourcePosition, SourceMap

__all__ = [
    "BlockKind",
    "DocBlock",
    "ParseFailureWitness",
    "PythonDocIngestCarrier",
    "SourceMap",
    "SourcePosition",
    "extract_doc_blocks",
    "ingest_python_file",
    "ingest_python_source",
    "iter_python_paths",
]
