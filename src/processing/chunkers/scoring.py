"""
Content analysis and strategy scoring for automatic chunker selection.

The analyzer classifies a document (content type, structural complexity,
size, image density, technical flag) and the scorer turns that analysis
into one explainable ``StrategyScore`` per candidate strategy.
"""

import logging
import re
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional

import yaml

from src.ingestion.extracted_content import ExtractedContent

from .base import ChunkingOptions, split_paragraphs

logger = logging.getLogger(__name__)

CANDIDATE_STRATEGIES = [
    "Paragraph",
    "Smart",
    "Semantic",
    "DomStructure",
    "FixedSize",
    "MemoryOptimized",
]

DEFAULT_TECHNICAL_KEYWORDS = frozenset({
    "class", "function", "method", "api", "endpoint", "parameter", "return",
    "exception", "interface", "implementation", "algorithm", "data structure",
    "performance", "optimization", "configuration", "deployment",
    "installation", "setup", "tutorial", "guide",
})

DEFAULT_ACADEMIC_KEYWORDS = frozenset({
    "abstract", "introduction", "methodology", "results", "conclusion",
    "references", "bibliography", "research", "study", "analysis",
    "experiment", "hypothesis", "theory", "literature review",
})

DEFAULT_NEWS_KEYWORDS = frozenset({
    "breaking news", "report", "journalist", "correspondent", "press release",
    "statement", "announcement", "update", "developing story", "exclusive",
    "investigation",
})

DOCUMENTATION_URL_HINTS = ("docs.", "/docs", "documentation", "api.", "/api/", "learn.", "guide", "manual", "readthedocs")
BLOG_URL_HINTS = ("blog", "medium.com", "dev.to", "/posts/")
NEWS_URL_HINTS = ("news", "/article/", "press")

_LIST_LINE = re.compile(r'^\s*([-*+•]|\d+[.)])\s', re.MULTILINE)
_TABLE_LINE = re.compile(r'^\s*\|', re.MULTILINE)
_MARKDOWN_HEADING_LINE = re.compile(r'^#{1,6}\s', re.MULTILINE)
_CODE_FENCE = re.compile(r'^\s*```', re.MULTILINE)
_STRUCTURAL_HTML_TAG = re.compile(r'<(h[1-6]|table|ul|ol|pre|section|article|dl)\b', re.IGNORECASE)


class ContentType(Enum):
    TECHNICAL = "technical"
    DOCUMENTATION = "documentation"
    ACADEMIC = "academic"
    NEWS = "news"
    BLOG = "blog"
    GENERAL = "general"


class StructuralComplexity(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass
class ScoreWeights:
    """Weight of each scoring category in a strategy's total."""
    content_type: float = 0.30
    structural_complexity: float = 0.25
    document_size: float = 0.20
    multimodal_content: float = 0.15
    technical_content: float = 0.10
    user_preference_bonus: float = 0.30


@dataclass
class AutoChunkingThresholds:
    """Cut-off values used by the content analyzer and scorer."""
    image_density: float = 0.3
    long_document: int = 50000
    very_long_document: int = 100000
    short_document: int = 5000
    complexity_high: float = 0.7
    complexity_medium: float = 0.4


@dataclass
class AutoChunkingConfig:
    """
    Keyword dictionaries, weights and thresholds for automatic selection.

    Attributes:
        technical_keywords: Terms that mark technical content
        academic_keywords: Terms that mark academic content
        news_keywords: Terms that mark news content
        min_keyword_matches: Matches needed before a dictionary classifies a document
        weights: Category weights
        thresholds: Analyzer thresholds
    """
    technical_keywords: FrozenSet[str] = DEFAULT_TECHNICAL_KEYWORDS
    academic_keywords: FrozenSet[str] = DEFAULT_ACADEMIC_KEYWORDS
    news_keywords: FrozenSet[str] = DEFAULT_NEWS_KEYWORDS
    min_keyword_matches: int = 2
    weights: ScoreWeights = field(default_factory=ScoreWeights)
    thresholds: AutoChunkingThresholds = field(default_factory=AutoChunkingThresholds)

    @classmethod
    def from_dict(cls, config_dict: Optional[Dict[str, Any]]) -> "AutoChunkingConfig":
        """
        Build a configuration from a dictionary.

        Missing sections keep their defaults.

        Raises:
            ValueError: If ``weights`` or ``thresholds`` contain an unknown key

        Example:
            >>> AutoChunkingConfig.from_dict({
            ...     "keywords": {"technical": ["api", "sdk"]},
            ...     "weights": {"content_type": 0.4},
            ...     "thresholds": {"short_document": 3000},
            ... })
        """
        config_dict = config_dict or {}
        keywords = config_dict.get("keywords") or {}
        defaults = cls()

        def keyword_set(key: str, default: FrozenSet[str]) -> FrozenSet[str]:
            values = keywords.get(key)
            if not values:
                return default
            return frozenset(str(v).strip().lower() for v in values if str(v).strip())

        return cls(
            technical_keywords=keyword_set("technical", defaults.technical_keywords),
            academic_keywords=keyword_set("academic", defaults.academic_keywords),
            news_keywords=keyword_set("news", defaults.news_keywords),
            min_keyword_matches=int(config_dict.get("min_keyword_matches", defaults.min_keyword_matches)),
            weights=_build_section(ScoreWeights, "weights", config_dict.get("weights")),
            thresholds=_build_section(AutoChunkingThresholds, "thresholds", config_dict.get("thresholds"))
        )

    @classmethod
    def from_yaml(cls, yaml_path: str) -> "AutoChunkingConfig":
        """
        Load configuration from a YAML file.

        Example YAML:
            auto_chunking:
              min_keyword_matches: 2
              keywords:
                technical: [api, endpoint, function]
              weights:
                content_type: 0.3
        """
        config_file = Path(yaml_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Config file not found: {yaml_path}")

        with open(config_file, 'r') as f:
            config_data = yaml.safe_load(f) or {}

        logger.info(f"Loaded auto chunking configuration from {yaml_path}")
        return cls.from_dict(config_data.get("auto_chunking", {}))


def _build_section(section_cls, section_name: str, values: Optional[Dict[str, Any]]):
    values = values or {}
    known = {f.name for f in fields(section_cls)}
    unknown = sorted(str(key) for key in set(values) - known)
    if unknown:
        raise ValueError(
            f"Unknown {section_name} key(s): {', '.join(unknown)}. "
            f"Expected one of: {', '.join(sorted(known))}"
        )
    return section_cls(**values)


@dataclass
class ContentAnalysisMetadata:
    """Everything the scorer knows about a document."""
    content_type: ContentType = ContentType.GENERAL
    structural_complexity: StructuralComplexity = StructuralComplexity.LOW
    complexity_score: float = 0.0
    document_length: int = 0
    paragraph_count: int = 0
    heading_count: int = 0
    image_count: int = 0
    image_density: float = 0.0
    is_multimodal: bool = False
    is_technical: bool = False
    has_html: bool = False
    keyword_matches: Dict[str, int] = field(default_factory=dict)


@dataclass
class ScoreComponent:
    category: str
    score: float
    reason: str


@dataclass
class StrategyScore:
    """
    Running score of one candidate strategy.

    Every contribution keeps the reason it was given, so a selection can
    be explained after the fact.
    """
    strategy_name: str
    components: List[ScoreComponent] = field(default_factory=list)

    def add(self, category: str, score: float, reason: str) -> None:
        self.components.append(ScoreComponent(category, score, reason))

    @property
    def total_score(self) -> float:
        return sum(c.score for c in self.components)

    @property
    def reasons(self) -> List[str]:
        return [c.reason for c in self.components]

    def get_category_score(self, category: str) -> float:
        return sum(c.score for c in self.components if c.category == category)

    def get_normalized_score(self, max_possible: float = 1.0) -> float:
        """Total score scaled to 0-1 against ``max_possible``."""
        if max_possible <= 0:
            return 0.0
        return max(0.0, min(self.total_score / max_possible, 1.0))

    def get_detailed_score_info(self) -> Dict[str, Any]:
        categories: Dict[str, float] = {}
        for component in self.components:
            categories[component.category] = categories.get(component.category, 0.0) + component.score

        return {
            "strategy": self.strategy_name,
            "total_score": round(self.total_score, 4),
            "categories": {k: round(v, 4) for k, v in categories.items()},
            "reasons": self.reasons,
        }


class ContentAnalyzer:
    """Builds ``ContentAnalysisMetadata`` for a document."""

    def __init__(self, config: Optional[AutoChunkingConfig] = None):
        self.config = config or AutoChunkingConfig()

    def analyze(self, content: ExtractedContent) -> ContentAnalysisMetadata:
        text = content.effective_text
        lowered = text.lower()
        thresholds = self.config.thresholds

        keyword_matches = {
            "technical": self._count_matches(lowered, self.config.technical_keywords),
            "academic": self._count_matches(lowered, self.config.academic_keywords),
            "news": self._count_matches(lowered, self.config.news_keywords),
        }

        paragraph_count = len(split_paragraphs(text)) if text.strip() else 0
        image_count = len(content.image_urls or [])
        image_density = image_count / max(paragraph_count, 1)

        heading_count = len(content.headings or []) or len(_MARKDOWN_HEADING_LINE.findall(text))
        code_blocks = len(_CODE_FENCE.findall(text)) // 2
        complexity_score = self._complexity_score(text, content.original_html, heading_count, code_blocks)

        if complexity_score >= thresholds.complexity_high:
            complexity = StructuralComplexity.HIGH
        elif complexity_score >= thresholds.complexity_medium:
            complexity = StructuralComplexity.MEDIUM
        else:
            complexity = StructuralComplexity.LOW

        metadata = ContentAnalysisMetadata(
            content_type=self._classify(keyword_matches, content.source_url.lower()),
            structural_complexity=complexity,
            complexity_score=complexity_score,
            document_length=len(text),
            paragraph_count=paragraph_count,
            heading_count=heading_count,
            image_count=image_count,
            image_density=image_density,
            is_multimodal=image_count > 0 and image_density >= thresholds.image_density,
            is_technical=keyword_matches["technical"] >= self.config.min_keyword_matches or code_blocks > 0,
            has_html=bool(content.original_html and content.original_html.strip()),
            keyword_matches=keyword_matches
        )

        logger.debug(
            f"Content analysis: type={metadata.content_type.value}, "
            f"complexity={metadata.structural_complexity.value}, length={metadata.document_length}"
        )
        return metadata

    @staticmethod
    def _count_matches(lowered: str, keywords: FrozenSet[str]) -> int:
        return sum(1 for keyword in keywords if keyword in lowered)

    def _classify(self, keyword_matches: Dict[str, int], url: str) -> ContentType:
        best_type = None
        best_count = 0
        for name, content_type in (
            ("technical", ContentType.TECHNICAL),
            ("academic", ContentType.ACADEMIC),
            ("news", ContentType.NEWS),
        ):
            count = keyword_matches[name]
            if count >= self.config.min_keyword_matches and count > best_count:
                best_type = content_type
                best_count = count

        if any(hint in url for hint in DOCUMENTATION_URL_HINTS):
            return ContentType.DOCUMENTATION
        if best_type is not None:
            return best_type
        if any(hint in url for hint in BLOG_URL_HINTS):
            return ContentType.BLOG
        if any(hint in url for hint in NEWS_URL_HINTS):
            return ContentType.NEWS
        return ContentType.GENERAL

    @staticmethod
    def _complexity_score(text: str, html: Optional[str], heading_count: int, code_blocks: int) -> float:
        if not text.strip() and not html:
            return 0.0

        markers = (
            heading_count
            + len(_LIST_LINE.findall(text))
            + len(_TABLE_LINE.findall(text))
            + code_blocks * 2
        )
        if html:
            markers += len(_STRUCTURAL_HTML_TAG.findall(html))

        # Ten structural markers per thousand characters saturates the score
        per_thousand = markers * 1000 / max(len(text), 1)
        return min(per_thousand / 10, 1.0)


# Fit of each candidate per analysis bucket, 0-1
CONTENT_TYPE_FIT = {
    ContentType.TECHNICAL: {"Smart": 0.9, "DomStructure": 0.85, "Semantic": 0.6, "Paragraph": 0.5, "FixedSize": 0.3, "MemoryOptimized": 0.3},
    ContentType.DOCUMENTATION: {"Smart": 0.95, "DomStructure": 0.9, "Semantic": 0.6, "Paragraph": 0.5, "FixedSize": 0.3, "MemoryOptimized": 0.3},
    ContentType.ACADEMIC: {"Semantic": 0.9, "Smart": 0.8, "Paragraph": 0.7, "DomStructure": 0.6, "FixedSize": 0.3, "MemoryOptimized": 0.3},
    ContentType.NEWS: {"Paragraph": 0.9, "Semantic": 0.8, "Smart": 0.6, "DomStructure": 0.6, "FixedSize": 0.4, "MemoryOptimized": 0.4},
    ContentType.BLOG: {"Paragraph": 0.85, "Semantic": 0.8, "Smart": 0.7, "DomStructure": 0.7, "FixedSize": 0.4, "MemoryOptimized": 0.4},
    ContentType.GENERAL: {"Paragraph": 0.8, "Semantic": 0.7, "Smart": 0.6, "DomStructure": 0.6, "FixedSize": 0.5, "MemoryOptimized": 0.5},
}

STRUCTURE_FIT = {
    StructuralComplexity.HIGH: {"DomStructure": 1.0, "Smart": 0.9, "Semantic": 0.5, "Paragraph": 0.4, "FixedSize": 0.2, "MemoryOptimized": 0.2},
    StructuralComplexity.MEDIUM: {"Smart": 0.8, "DomStructure": 0.8, "Paragraph": 0.7, "Semantic": 0.7, "FixedSize": 0.4, "MemoryOptimized": 0.4},
    StructuralComplexity.LOW: {"Paragraph": 0.9, "Semantic": 0.8, "FixedSize": 0.6, "MemoryOptimized": 0.6, "Smart": 0.5, "DomStructure": 0.4},
}

SIZE_FIT = {
    "very_long": {"MemoryOptimized": 1.0, "FixedSize": 0.8, "Paragraph": 0.5, "Semantic": 0.4, "Smart": 0.4, "DomStructure": 0.3},
    "long": {"MemoryOptimized": 0.8, "FixedSize": 0.7, "Semantic": 0.6, "Paragraph": 0.6, "Smart": 0.6, "DomStructure": 0.5},
    "medium": {"Semantic": 0.9, "Smart": 0.85, "Paragraph": 0.8, "DomStructure": 0.8, "FixedSize": 0.6, "MemoryOptimized": 0.5},
    "short": {"Paragraph": 0.9, "Semantic": 0.8, "Smart": 0.7, "DomStructure": 0.7, "FixedSize": 0.6, "MemoryOptimized": 0.3},
}

MULTIMODAL_FIT = {"DomStructure": 1.0, "Smart": 0.9, "Semantic": 0.6, "Paragraph": 0.5, "FixedSize": 0.3, "MemoryOptimized": 0.3}
TECHNICAL_FIT = {"Smart": 1.0, "DomStructure": 0.9, "Semantic": 0.6, "Paragraph": 0.5, "FixedSize": 0.3, "MemoryOptimized": 0.3}
NON_TECHNICAL_FIT = {"Paragraph": 0.7, "Semantic": 0.7, "Smart": 0.5, "DomStructure": 0.5, "FixedSize": 0.5, "MemoryOptimized": 0.5}


class StrategyScorer:
    """Scores candidate strategies against a content analysis."""

    def __init__(self, config: Optional[AutoChunkingConfig] = None):
        self.config = config or AutoChunkingConfig()

    def candidates(self, metadata: ContentAnalysisMetadata) -> List[str]:
        """Candidate strategies in tie-break order; DomStructure needs HTML."""
        return [
            name for name in CANDIDATE_STRATEGIES
            if name != "DomStructure" or metadata.has_html
        ]

    def score_all(
        self,
        metadata: ContentAnalysisMetadata,
        options: Optional[ChunkingOptions] = None
    ) -> List[StrategyScore]:
        return [self.score(name, metadata, options) for name in self.candidates(metadata)]

    def select(self, scores: List[StrategyScore]) -> StrategyScore:
        """Highest total wins; earlier candidates win ties."""
        best = scores[0]
        for score in scores[1:]:
            if score.total_score > best.total_score:
                best = score
        return best

    def score(
        self,
        strategy_name: str,
        metadata: ContentAnalysisMetadata,
        options: Optional[ChunkingOptions] = None
    ) -> StrategyScore:
        weights = self.config.weights
        result = StrategyScore(strategy_name)

        fit = CONTENT_TYPE_FIT[metadata.content_type][strategy_name]
        result.add(
            "content_type",
            fit * weights.content_type,
            f"{metadata.content_type.value} content fits {strategy_name} at {fit:.2f}"
        )

        fit = STRUCTURE_FIT[metadata.structural_complexity][strategy_name]
        result.add(
            "structural_complexity",
            fit * weights.structural_complexity,
            f"{metadata.structural_complexity.value} structural complexity "
            f"({metadata.complexity_score:.2f}) fits {strategy_name} at {fit:.2f}"
        )

        bucket = self._size_bucket(metadata.document_length)
        fit = SIZE_FIT[bucket][strategy_name]
        result.add(
            "document_size",
            fit * weights.document_size,
            f"{bucket.replace('_', ' ')} document ({metadata.document_length} chars) fits {strategy_name} at {fit:.2f}"
        )

        if metadata.is_multimodal:
            fit = MULTIMODAL_FIT[strategy_name]
            reason = f"image density {metadata.image_density:.2f} fits {strategy_name} at {fit:.2f}"
        else:
            fit = 0.5
            reason = "no significant image content"
        result.add("multimodal_content", fit * weights.multimodal_content, reason)

        if metadata.is_technical:
            fit = TECHNICAL_FIT[strategy_name]
            reason = f"technical content fits {strategy_name} at {fit:.2f}"
        else:
            fit = NON_TECHNICAL_FIT[strategy_name]
            reason = f"non-technical content fits {strategy_name} at {fit:.2f}"
        result.add("technical_content", fit * weights.technical_content, reason)

        if options is not None and options.minimize_memory_usage and strategy_name == "MemoryOptimized":
            result.add("user_preference", weights.user_preference_bonus, "memory usage minimization requested")

        return result

    def _size_bucket(self, length: int) -> str:
        thresholds = self.config.thresholds
        if length > thresholds.very_long_document:
            return "very_long"
        if length > thresholds.long_document:
            return "long"
        if length < thresholds.short_document:
            return "short"
        return "medium"
