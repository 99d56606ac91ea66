from __future__ import annotations

from fastapi import APIRouter, Depends

from inkagent.api.deps import get_registry
from inkagent.api.schemas import CapabilityInfo, ParameterInfo, ToolsResponse
from inkagent.tools.registry import ToolRegistry

router = APIRouter()


@router.get("/api/tools", response_model=ToolsResponse)
async def list_tools(registry: ToolRegistry = Depends(get_registry)):  # noqa: B008
    """List registered capabilities along with the catalog text the model sees."""
    capabilities = registry.list_capabilities()
    return ToolsResponse(
        count=len(capabilities),
        tools=[
            CapabilityInfo(
                name=capability.name,
                description=capability.description,
                parameters={
                    key: ParameterInfo(
                        type=spec.type,
                        description=spec.description,
                        required=spec.required,
                    )
                    for key, spec in capability.parameters.items()
                },
            )
            for capability in capabilities
        ],
        catalog=registry.describe_all(),
    )
