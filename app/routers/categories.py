"""
Categories router - the merged category/color list.

Endpoints:
==========
- GET /api/categories → configured categories first, then remaining defaults
"""

from typing import List

from fastapi import APIRouter, Depends

from app.deps import get_category_service
from app.schemas.category import CategoryDefinition
from app.services.category_service import CategoryService


router = APIRouter(prefix="/api/categories", tags=["categories"])


@router.get("", response_model=List[CategoryDefinition])
def get_categories(
    category_service: CategoryService = Depends(get_category_service),
):
    """
    List every category the display clients can color.

    Example response:
    [
        {"name": "Payday", "htmlColor": "#00FF00", "isDefault": false},
        {"name": "Holiday", "htmlColor": "#41DC6A", "isDefault": true}
    ]
    """
    return category_service.get_all_categories()
