"""
Category schemas - category names and the colors they map to.

CategoryOverride is what operators configure (CATEGORIES / CATEGORIES_FILE).
CategoryDefinition is one entry of the merged set returned by /api/categories.
"""

from pydantic import BaseModel, ConfigDict, Field


class CategoryOverride(BaseModel):
    """
    A configured category color.

    Example:
    {
        "name": "Payday",
        "htmlColor": "#00FF00"
    }
    """
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1, description="Category name (case-insensitive)")
    html_color: str = Field(..., alias="htmlColor", description="HTML color code")


class CategoryDefinition(BaseModel):
    """
    One category of the merged set, flagged with where it came from.

    Example response:
    {
        "name": "Holiday",
        "htmlColor": "#41DC6A",
        "isDefault": true
    }
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    html_color: str = Field(..., alias="htmlColor")
    # is_default: True for built-in categories, False for configured ones
    is_default: bool = Field(False, alias="isDefault")
