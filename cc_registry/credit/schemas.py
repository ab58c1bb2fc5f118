from pydantic import BaseModel, ConfigDict, Field

from cc_registry.core.models.base import CreditStandard


class Certification(BaseModel):
    """The real-world claim a credit is backed by.

    Supplied by the verifier at issuance and never changed afterwards; the
    credit id is derived from its canonical encoding, so every field takes
    part in the identity of the credit.
    """

    model_config = ConfigDict(frozen=True)

    project_name: str = Field(description="Name of the offset project.")
    issuer_name: str = Field(description="Organisation that issued the underlying certificate.")
    location: str = Field(description="Where the project is located.")
    methodology: str = Field(description="Methodology identifier, e.g. VM0015.")
    quantity: int = Field(ge=0, lt=2**256, description="Quantity of the credit, in the standard's unit.")
    vintage: int = Field(ge=0, lt=2**16, description="Vintage year.")
    expiry: int = Field(
        default=0,
        ge=0,
        lt=2**64,
        description="Unix time after which the credit can no longer be used, 0 for never.",
    )
    standard: CreditStandard


class CreditMetadata(BaseModel):
    """Registrar record of an issued credit. Replaced, never edited, on retirement."""

    model_config = ConfigDict(frozen=True)

    credit_id: str
    certification: Certification
    salt: str
    created_at: int
    minter: str
    attester: str
    attestation_proof: str = Field(description="Hex encoded proof blob the attester signed over.")
    retired_at: int = 0
    retirer: str | None = None

    @property
    def is_retired(self) -> bool:
        return self.retired_at > 0


class CreditStatusRead(BaseModel):
    credit_id: str
    issued: bool
    expired: bool
    retired: bool
    usable: bool


class CreditIdRequest(BaseModel):
    certification: Certification
    salt: str


class CreditIdRead(BaseModel):
    credit_id: str


class IssuanceContextRead(BaseModel):
    issuance_context: str
    registrar: str
    chain_id: int
