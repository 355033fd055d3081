from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from academy.promos.models import to_naive_utc

# ==================== COURSE MODELS ====================


class Topic(BaseModel):
    text: str = ""
    order: Optional[int] = None


class Module(BaseModel):
    title: str = ""
    order: Optional[int] = None
    topics: List[Topic] = []


class Mentor(BaseModel):
    name: Optional[str] = ""
    image: Optional[str] = ""
    image_public_id: Optional[str] = Field("", alias="imagePublicId")


class CourseCreate(BaseModel):
    title: str = Field(..., min_length=1)
    slug: Optional[str] = None
    meta_title: Optional[str] = Field(None, alias="metaTitle")
    meta_description: Optional[str] = Field(None, alias="metaDescription")
    description: Optional[str] = None
    niche: Optional[str] = None
    category_id: Optional[str] = Field(None, alias="categoryId")
    price: float = Field(0, ge=0)
    published: bool = True
    start_time: Optional[datetime] = Field(None, alias="startTime")
    duration: Optional[str] = None
    key_outcomes: List[str] = Field([], alias="keyOutcomes")
    mentor: Optional[Mentor] = None
    image: Optional[str] = None
    image_public_id: Optional[str] = Field(None, alias="imagePublicId")
    modules: List[Module] = []


class CourseUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    slug: Optional[str] = None
    meta_title: Optional[str] = Field(None, alias="metaTitle")
    meta_description: Optional[str] = Field(None, alias="metaDescription")
    description: Optional[str] = None
    niche: Optional[str] = None
    category_id: Optional[str] = Field(None, alias="categoryId")
    price: Optional[float] = Field(None, ge=0)
    published: Optional[bool] = None
    start_time: Optional[datetime] = Field(None, alias="startTime")
    duration: Optional[str] = None
    key_outcomes: Optional[List[str]] = Field(None, alias="keyOutcomes")
    mentor: Optional[Mentor] = None
    image: Optional[str] = None
    image_public_id: Optional[str] = Field(None, alias="imagePublicId")
    modules: Optional[List[Module]] = None


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


def ordered_modules(modules: List[Module]) -> List[dict]:
    """Modules/topics with `order` defaulting to their list index"""
    return [
        {
            "title": module.title or "",
            "order": module.order if module.order is not None else module_index,
            "topics": [
                {
                    "text": topic.text or "",
                    "order": topic.order if topic.order is not None else topic_index,
                }
                for topic_index, topic in enumerate(module.topics)
            ],
        }
        for module_index, module in enumerate(modules)
    ]


def course_fields(data, partial: bool = False) -> dict:
    """Map a CourseCreate/CourseUpdate onto stored (camelCase) document fields"""
    raw = data.dict(exclude_unset=partial)
    fields = {}
    simple = {
        "title": "title",
        "meta_title": "metaTitle",
        "meta_description": "metaDescription",
        "description": "description",
        "niche": "niche",
        "category_id": "categoryId",
        "price": "price",
        "published": "published",
        "duration": "duration",
        "key_outcomes": "keyOutcomes",
        "image": "image",
        "image_public_id": "imagePublicId",
    }
    for attr, key in simple.items():
        if attr in raw:
            value = raw[attr]
            if value is None and not partial and key not in ("price", "published", "categoryId"):
                value = [] if key == "keyOutcomes" else ""
            fields[key] = value
    if "start_time" in raw:
        fields["startTime"] = to_naive_utc(data.start_time)
    if "mentor" in raw:
        mentor = data.mentor or Mentor()
        fields["mentor"] = {
            "name": mentor.name or "",
            "image": mentor.image or "",
            "imagePublicId": mentor.image_public_id or "",
        }
    if "modules" in raw and data.modules is not None:
        fields["modules"] = ordered_modules(data.modules)
    return fields
