"""
Catalog API Endpoints
Menu items with variation prices for the current shopper
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from storefront.core.auth import TokenUser, get_current_member_optional
from storefront.core.errors import StorefrontError, to_http_exception
from storefront.services.catalog_service import CatalogService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/items")
async def list_items(member: Optional[TokenUser] = Depends(get_current_member_optional)):
    """
    Available menu items with variations grouped by category

    Prices reflect the member's pricing class when a member token is sent.
    """
    try:
        items = CatalogService().list_items(member.id if member else None)

        return {
            "status": "success",
            "count": len(items),
            "data": [item.to_dict() for item in items]
        }

    except Exception as e:
        logger.error(f"Error fetching catalog: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching catalog: {str(e)}")


@router.get("/items/{menu_item_id}")
async def get_item(
    menu_item_id: str,
    member: Optional[TokenUser] = Depends(get_current_member_optional)
):
    try:
        item = CatalogService().get_item(menu_item_id, member.id if member else None)

        return {
            "status": "success",
            "data": item.to_dict()
        }

    except StorefrontError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error fetching menu item {menu_item_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching menu item: {str(e)}")
