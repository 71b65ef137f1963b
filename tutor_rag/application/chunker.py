"""
Content-aware document chunker.

Splits raw document text into retrievable units. Past exam papers are split
per numbered question; textbook material uses a sliding window that prefers
sentence boundaries; mixed documents pick whichever fits.

Dependencies: tutor_rag.models.chunk
System role: Ingestion-time text segmentation
"""

import logging
import re

from tutor_rag.models.chunk import (
    Chunk,
    ChunkingOptions,
    ChunkMetadata,
    ChunkQualityReport,
    ChunkType,
    ExamInfo,
    FileMetadata,
)

logger = logging.getLogger(__name__)

MIN_CHUNK_LENGTH = 50
MAX_RECOMMENDED_CHUNK_LENGTH = 5000
SHORT_CHUNK_RATIO_LIMIT = 0.3
BOUNDARY_MIN_RATIO = 0.7

EXAM_SUBJECTS = [
    "소프트웨어 설계",
    "소프트웨어 개발",
    "데이터베이스 구축",
    "프로그래밍 언어 활용",
    "정보시스템 구축관리",
]

QUESTION_BOUNDARY = re.compile(r"^(?:\d+\.|\d+번)", re.MULTILINE)
EXAM_PATTERN = re.compile(r"(\d{4})년.*?(\d+)회")
SENTENCE_ENDINGS = (".", "!", "?", "\n")
SECTION_MARKERS = ("장", "절", "Chapter", "Section")
EXAM_KEYWORDS = ("기출", "시험", "정답", "해설")


def extract_file_metadata(file_name: str, content: str) -> FileMetadata:
    """
    Detect exam info, subject and document kind from name and content.

    Args:
        file_name: Original file name
        content: Extracted document text

    Returns:
        FileMetadata: Detected signals (all optional)
    """
    exam_match = EXAM_PATTERN.search(content) or EXAM_PATTERN.search(file_name)
    exam_info = None
    if exam_match:
        exam_info = ExamInfo(year=int(exam_match.group(1)), round=int(exam_match.group(2)))

    subject = next(
        (s for s in EXAM_SUBJECTS if s in content or s in file_name),
        None,
    )

    boundaries = len(QUESTION_BOUNDARY.findall(content))
    has_questions = ("문제" in content and "번" in content) or (
        boundaries >= 2 and any(k in content or k in file_name for k in EXAM_KEYWORDS)
    )
    is_textbook = "문제" not in content or any(m in content for m in SECTION_MARKERS)

    return FileMetadata(
        exam_info=exam_info,
        subject=subject,
        has_questions=has_questions,
        is_textbook=is_textbook,
    )


def validate_chunk_quality(chunks: list[Chunk]) -> ChunkQualityReport:
    """
    Flag suspicious chunk sets without rejecting them.

    Checks for an empty result, too many short chunks (>30% under 50 chars),
    oversized chunks (>5000 chars) and chunks that are blank after trimming.
    """
    issues: list[str] = []

    if not chunks:
        issues.append("No chunks were produced")
    else:
        short = [c for c in chunks if len(c.content) < MIN_CHUNK_LENGTH]
        if len(short) > len(chunks) * SHORT_CHUNK_RATIO_LIMIT:
            issues.append(f"{round(len(short) / len(chunks) * 100)}% of chunks are too short")

        long = [c for c in chunks if len(c.content) > MAX_RECOMMENDED_CHUNK_LENGTH]
        if long:
            issues.append(f"{len(long)} chunk(s) exceed the recommended size")

        empty = [c for c in chunks if not c.content.strip()]
        if empty:
            issues.append(f"{len(empty)} chunk(s) are empty")

    return ChunkQualityReport(is_valid=not issues, issues=issues)


class DocumentChunker:
    """Chunker with per-document strategy detection."""

    def __init__(self, default_options: ChunkingOptions | None = None) -> None:
        """
        Initialize chunker.

        Args:
            default_options: Options used when a call passes none
        """
        self.default_options = default_options or ChunkingOptions()

    def chunk(
        self,
        content: str,
        source_name: str,
        options: ChunkingOptions | None = None,
    ) -> list[Chunk]:
        """
        Split a document into chunks.

        Never raises for malformed content: unknown structure degrades to
        textbook windows and an empty document yields an empty list.

        Args:
            content: Raw document text
            source_name: Document name, used for ids and metadata detection
            options: Chunking options (defaults from construction)

        Returns:
            list[Chunk]: Chunks with contiguous indices
        """
        options = options or self.default_options
        if not content or not content.strip():
            logger.warning(f"{__name__}:chunk - Empty document '{source_name}'")
            return []

        file_meta = extract_file_metadata(source_name, content)
        chunk_type = options.chunk_type
        if chunk_type == ChunkType.AUTO:
            if file_meta.has_questions:
                chunk_type = ChunkType.QUESTION
            elif file_meta.is_textbook:
                chunk_type = ChunkType.TEXTBOOK
            else:
                chunk_type = ChunkType.MIXED

        if chunk_type == ChunkType.MIXED:
            has_markers = QUESTION_BOUNDARY.search(content) is not None
            chunk_type = ChunkType.QUESTION if has_markers else ChunkType.TEXTBOOK

        spans: list[tuple[int, int, str]] | None = None
        if chunk_type == ChunkType.QUESTION:
            spans = self._question_spans(content)
            if not spans:
                spans = None
                logger.info(
                    f"{__name__}:chunk - No question boundaries in '{source_name}', "
                    f"falling back to textbook mode"
                )
                chunk_type = ChunkType.TEXTBOOK
        if spans is None:
            spans = self._textbook_spans(content, options)

        chunks = self._build_chunks(spans, source_name, chunk_type, file_meta)
        logger.info(
            f"{__name__}:chunk - Chunked '{source_name}'",
            extra={"chunk_type": chunk_type.value, "chunk_count": len(chunks)},
        )
        return chunks

    def _question_spans(self, content: str) -> list[tuple[int, int, str]] | None:
        """Split on numbered items; None when no boundary exists."""
        starts = [m.start() for m in QUESTION_BOUNDARY.finditer(content)]
        if not starts:
            return None

        # Text before the first question (instructions, headers) is a unit too
        bounds = ([0] if starts[0] > 0 else []) + starts + [len(content)]
        spans = []
        for start, end in zip(bounds, bounds[1:]):
            text = content[start:end].strip()
            if len(text) < MIN_CHUNK_LENGTH:
                continue
            spans.append((start, end, text))
        return spans

    def _textbook_spans(
        self,
        content: str,
        options: ChunkingOptions,
    ) -> list[tuple[int, int, str]]:
        """Sliding window with overlap, trimmed back to sentence boundaries."""
        max_size = options.max_chunk_size
        overlap = options.overlap_size
        length = len(content)
        spans = []
        start = 0

        while start < length:
            end = min(start + max_size, length)
            window = content[start:end]

            if end < length:
                boundary = max(window.rfind(ch) for ch in SENTENCE_ENDINGS)
                if boundary > max_size * BOUNDARY_MIN_RATIO:
                    window = window[: boundary + 1]

            chunk_end = start + len(window)
            text = window.strip()
            is_final = chunk_end >= length
            if text and (is_final or len(text) >= MIN_CHUNK_LENGTH):
                spans.append((start, chunk_end, text))

            if is_final:
                break

            next_start = chunk_end - overlap
            if next_start <= start:
                # Overlap would stall the window after a boundary trim
                next_start = chunk_end
            start = next_start

        return spans

    def _build_chunks(
        self,
        spans: list[tuple[int, int, str]],
        source_name: str,
        chunk_type: ChunkType,
        file_meta: FileMetadata,
    ) -> list[Chunk]:
        total = len(spans)
        label = "question" if chunk_type == ChunkType.QUESTION else "chunk"
        chunks = []
        for index, (start, end, text) in enumerate(spans):
            number = index + 1 if chunk_type == ChunkType.QUESTION else index
            chunks.append(
                Chunk(
                    id=f"{source_name}_{label}_{number}",
                    content=text,
                    metadata=ChunkMetadata(
                        chunk_index=index,
                        total_chunks=total,
                        start_offset=start,
                        end_offset=end,
                        chunk_type=chunk_type,
                        subject=file_meta.subject,
                        exam_info=file_meta.exam_info,
                    ),
                )
            )
        return chunks
