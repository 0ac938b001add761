from typing import Optional

from pydantic import BaseModel, Field, StrictBool, StrictStr

# Sub-service flags reported by Server_status, keyed by the exported "name" label
SERVICE_NAMES = {
    "ldap": "directory",
    "mail": "mail",
    "pki": "public-key",
    "proxy": "proxy",
    "session": "session",
    "sql": "database",
}


class OpenOTPProduct(BaseModel):
    maximum_users: StrictStr = ""


class LicenseProducts(BaseModel):
    OpenOTP: OpenOTPProduct = Field(default_factory=OpenOTPProduct)


class LicensePayload(BaseModel):
    """
    The subset of the Get_License_Details result the exporter reads.
    """

    customer_id: StrictStr = ""
    instance_id: StrictStr = ""
    error_message: StrictStr = ""
    valid_from: StrictStr = ""
    valid_to: StrictStr = ""
    products: LicenseProducts = Field(default_factory=LicenseProducts)


class LicenseDetails(BaseModel):
    """
    Decoded license. A maximum user count that failed to convert is None; a
    validity date that failed to convert is 0.0.
    """

    customer_id: str
    instance_id: str
    max_users: Optional[float] = None
    valid_from: float = 0.0
    valid_to: float = 0.0
    error_message: str = ""


class ServerServices(BaseModel):
    ldap: StrictBool
    mail: StrictBool
    pki: StrictBool
    proxy: StrictBool
    session: StrictBool
    sql: StrictBool

    def by_service_name(self) -> dict:
        """
        Map each sub-service flag to its exported service name.

        Returns:
            dict: Service name -> bool.
        """
        return {name: getattr(self, field) for field, name in SERVICE_NAMES.items()}


class ServerStatus(BaseModel):
    enabled: StrictBool
    status: StrictBool
    version: StrictStr
    servers: ServerServices
