from pydantic import BaseModel, Field


class ProjectRules(BaseModel):
    slug: str
    rules_version: str


class SlugRules(BaseModel):
    pattern: str = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"
    min: int = 1
    max: int = 100


class DuplicateRules(BaseModel):
    copy_suffix: str = "-copy"
    title_suffix: str = " (Copy)"
    max_attempts: int = Field(default=100, ge=1)


class ListingRules(BaseModel):
    cms_page_size: int = 10
    public_page_size: int = 12


class CollectionRules(BaseModel):
    posts: str = "blogPosts"
    slug_index: str = "blogSlugIndex"


class BlogRules(BaseModel):
    languages: list[str] = Field(default_factory=lambda: ["en", "es", "fr"])
    default_language: str = "en"
    slug: SlugRules = Field(default_factory=SlugRules)
    duplicate: DuplicateRules = Field(default_factory=DuplicateRules)
    listing: ListingRules = Field(default_factory=ListingRules)
    collections: CollectionRules = Field(default_factory=CollectionRules)


class RelatedWeightRules(BaseModel):
    category_match: float = 3
    event_overlap: float = 2
    currency_overlap: float = 2
    tag_overlap: float = 1
    keyword_overlap: float = 0.5


class RecencyRules(BaseModel):
    per_day: float = 0.1
    window_days: int = 30


class EngagementRules(BaseModel):
    view_weight: float = 0.01
    view_cap: float = 2
    like_weight: float = 0.1
    like_cap: float = 2


class RelatedPostsRules(BaseModel):
    weights: RelatedWeightRules = Field(default_factory=RelatedWeightRules)
    recency: RecencyRules = Field(default_factory=RecencyRules)
    engagement: EngagementRules = Field(default_factory=EngagementRules)
    candidate_pool: int = 50
    max_related: int = 6
    preview_max_candidates: int = 20


class StoreRules(BaseModel):
    backend: str = "memory"  # memory | firestore
    project_id: str | None = None
    transaction_max_attempts: int = Field(default=5, ge=1)


class Rules(BaseModel):
    project: ProjectRules
    blog: BlogRules = Field(default_factory=BlogRules)
    related_posts: RelatedPostsRules = Field(default_factory=RelatedPostsRules)
    store: StoreRules = Field(default_factory=StoreRules)
