"""
Site Settings API Endpoint
"""
import logging

from fastapi import APIRouter, HTTPException

from storefront.repositories import SiteSettingsRepository

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
async def get_site_settings():
    """Store name, logo, footer links and the checkout flow (order_option)"""
    try:
        site = SiteSettingsRepository().get_all()

        return {
            "status": "success",
            "data": site.to_dict()
        }

    except Exception as e:
        logger.error(f"Error fetching site settings: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching site settings: {str(e)}")
