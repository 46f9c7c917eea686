"""
Category and publish status decisions.

Everything here is pure: no network, no clock, no randomness.
"""
from typing import Mapping, Optional

from brewpress.core.article import AnalysisResult, CategoryAssignment, ImageOutcome

STATUS_PUBLISH = "publish"
STATUS_DRAFT = "draft"


class CategoryResolver:
    """
    Maps the AI's category choice onto WordPress category ids.
    """
    def __init__(
        self,
        category_map: Mapping[str, int],
        default_category: str,
        featured_category: int,
        featured_threshold: int = 4,
    ):
        """
        Initialize the CategoryResolver.

        Args:
            category_map: Category name to WordPress category id
            default_category: Name used when the AI's choice is unknown or absent
            featured_category: Id added for high-importance articles
            featured_threshold: Minimum importance that earns the featured id
        """
        if default_category not in category_map:
            raise ValueError(f"Default category {default_category!r} is not in the category map")
        self.category_map = {name: int(category_id) for name, category_id in category_map.items()}
        self.default_category = default_category
        self.featured_category = int(featured_category)
        self.featured_threshold = featured_threshold

    @property
    def category_names(self):
        return list(self.category_map)

    def primary_id(self, name: Optional[str]) -> int:
        if name and name in self.category_map:
            return self.category_map[name]
        return self.category_map[self.default_category]

    def is_featured(self, importance: Optional[int]) -> bool:
        return importance is not None and importance >= self.featured_threshold

    def resolve(self, analysis: AnalysisResult) -> Optional[CategoryAssignment]:
        """
        Decide the categories for an analyzed article.

        Args:
            analysis: Parsed AI analysis

        Returns:
            CategoryAssignment, or None when the article is out of domain and
            must be skipped without write-back
        """
        if not analysis.relevant:
            return None

        featured = self.featured_category if self.is_featured(analysis.importance) else None
        return CategoryAssignment(primary=self.primary_id(analysis.category), featured=featured)


def decide_status(has_cover_image: bool, image_outcome: ImageOutcome) -> str:
    """
    Posts are only published with a cover image, either pre-existing or
    freshly resolved; everything else stays a draft.
    """
    if has_cover_image or image_outcome.is_resolved:
        return STATUS_PUBLISH
    return STATUS_DRAFT
