from typing import Optional

from pydantic import BaseModel


class DBConfig(BaseModel):
    url: str
    service_role_key: str


class StripeConfig(BaseModel):
    secret_key: Optional[str] = None
    webhook_secret: Optional[str] = None
    api_url: str = "https://api.stripe.com/v1"
    success_url: str = "http://localhost:3000/success"
    cancel_url: str = "http://localhost:3000/cancel"
    default_price_id: Optional[str] = None
    # used for inline price_data when no price id is known
    currency: str = "brl"
    unit_amount: int = 990
    product_name: str = "Licença Controle Financeiro"
    signature_tolerance: int = 300


class EmailConfig(BaseModel):
    api_key: Optional[str] = None
    sender: str = "licenses@example.com"
    api_url: str = "https://api.resend.com/emails"
