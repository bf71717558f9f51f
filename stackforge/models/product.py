"""Resolution output models — the provisioning artifacts of one product."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict


class ResolutionOutcome(str, Enum):
    """Terminal state of one declared version."""

    FRESH = "fresh"
    CACHED = "cached"


class ProvisioningArtifact(BaseModel):
    """One resolved version of a product, ready to be placed in its definition."""

    model_config = ConfigDict(frozen=True)

    version_name: str
    stack_id: str
    description: str = ""
    disable_template_validation: bool = False
    template_url: str
    digest: str
    outcome: ResolutionOutcome

    def to_parameter(self) -> dict[str, Any]:
        """Render as a provisioning artifact parameter."""
        return {
            "Name": self.version_name,
            "Description": self.description,
            "DisableTemplateValidation": self.disable_template_validation,
            "Info": {"LoadTemplateFromURL": self.template_url},
        }


class ProductDefinition(BaseModel):
    """The assembled product with its ordered list of provisioning artifacts."""

    model_config = ConfigDict(frozen=True)

    product_name: str
    owner: str
    description: str = ""
    provisioning_artifacts: list[ProvisioningArtifact]

    def to_parameters(self) -> list[dict[str, Any]]:
        return [pa.to_parameter() for pa in self.provisioning_artifacts]

    def to_document(self) -> dict[str, Any]:
        """Render the product as a resource properties document."""
        return {
            "Name": self.product_name,
            "Owner": self.owner,
            "Description": self.description,
            "ProvisioningArtifactParameters": self.to_parameters(),
        }
