"""
Site settings (key/value rows of the site_settings table)
"""
from pydantic import BaseModel, Field

from storefront.domain.order import OrderOption


class SiteSettings(BaseModel):
    site_name: str = Field("Trish Devion", description="Store name")
    site_logo: str = Field("", description="Logo URL")
    order_option: OrderOption = Field(OrderOption.ORDER_VIA_MESSENGER, description="Checkout flow")
    footer_social_1: str = ""
    footer_social_2: str = ""
    footer_social_3: str = ""
    footer_social_4: str = ""
    footer_support_url: str = ""

    @classmethod
    def from_rows(cls, rows) -> "SiteSettings":
        """Build from [{'id': key, 'value': value}, ...]; unknown keys are ignored"""
        values = {}
        for row in rows:
            key = row['id']
            if key in cls.model_fields and row.get('value') is not None:
                values[key] = row['value']
        if values.get('order_option') not in {o.value for o in OrderOption}:
            values.pop('order_option', None)
        return cls(**values)

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")
