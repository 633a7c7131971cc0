"""Pydantic input models for devflow-mcp tools.

Wire names are camelCase (``projectName``, ``qualityGates``); models expose
snake_case attributes and accept either form. Enum fields store their plain
string values so payloads can be echoed back without conversion.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


# =============================================================================
# Enums
# =============================================================================


class Level(str, Enum):
    """Three-step scale shared by priorities and security levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class PlanType(str, Enum):
    DEVELOPMENT = "development"
    TESTING = "testing"
    DEPLOYMENT = "deployment"
    MAINTENANCE = "maintenance"
    MIGRATION = "migration"


class IntegrationType(str, Enum):
    API = "api"
    DATABASE = "database"
    SERVICE = "service"
    TOOL = "tool"


class Role(str, Enum):
    """Roles a workflow phase or generated artifact can be assigned to."""

    DEVELOPER = "developer"
    PRODUCT_STRATEGIST = "product-strategist"
    DESIGNER = "designer"
    QA_ENGINEER = "qa-engineer"
    OPERATIONS_ENGINEER = "operations-engineer"


class CodeType(str, Enum):
    COMPONENT = "component"
    FUNCTION = "function"
    API = "api"
    TEST = "test"
    CONFIG = "config"
    DOCUMENTATION = "documentation"


class QualityLevel(str, Enum):
    BASIC = "basic"
    STANDARD = "standard"
    HIGH = "high"


class WorkflowType(str, Enum):
    SDLC = "sdlc"
    PROJECT = "project"
    QUALITY = "quality"
    CUSTOM = "custom"


class _WireModel(BaseModel):
    """Base for camelCase wire models."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        validate_default=True,
    )

    def to_wire(self) -> Dict[str, Any]:
        """Dump using camelCase keys."""
        return self.model_dump(by_alias=True, mode="json")


# =============================================================================
# smart_begin
# =============================================================================


class SmartBeginInput(_WireModel):
    project_name: str = Field(..., min_length=1, description="Project name")
    description: Optional[str] = Field(default=None, description="Project description")
    tech_stack: List[str] = Field(default_factory=list)
    target_users: List[str] = Field(
        default_factory=list,
        description="Audiences: strategy-people, vibe-coders, non-technical-founders",
    )
    business_goals: Optional[List[str]] = None

    @field_validator("project_name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("projectName must not be blank")
        return value.strip()


# =============================================================================
# smart_plan
# =============================================================================


class Timeline(_WireModel):
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    duration: int = Field(default=4, ge=1, description="Duration in weeks")


class Resources(_WireModel):
    team_size: int = Field(default=3, ge=1)
    budget: float = Field(default=50000, ge=0)
    external_tools: List[str] = Field(default_factory=list)


class PlanScope(_WireModel):
    features: List[str] = Field(default_factory=list)
    timeline: Timeline = Field(default_factory=Timeline)
    resources: Resources = Field(default_factory=Resources)


class ExternalMCP(_WireModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    integration_type: IntegrationType
    priority: Level = Level.MEDIUM
    estimated_effort: int = Field(default=5, ge=1, le=10)


class PerformanceTargets(_WireModel):
    response_time: float = Field(default=100, ge=0, description="Milliseconds")
    throughput: float = Field(default=1000, ge=0, description="Requests per second")
    availability: float = Field(default=99.9, ge=0, le=100, description="Percent")


class PlanQualityRequirements(_WireModel):
    test_coverage: float = Field(default=85, ge=0, le=100)
    security_level: Level = Level.MEDIUM
    performance_targets: PerformanceTargets = Field(default_factory=PerformanceTargets)


class PlanBusinessContext(_WireModel):
    goals: List[str] = Field(default_factory=list)
    target_users: List[str] = Field(default_factory=list)
    success_metrics: List[str] = Field(default_factory=list)
    risk_factors: List[str] = Field(default_factory=list)


class SmartPlanInput(_WireModel):
    project_id: str = Field(..., min_length=1)
    plan_type: PlanType = PlanType.DEVELOPMENT
    scope: PlanScope = Field(default_factory=PlanScope)
    external_mcps: List[ExternalMCP] = Field(default_factory=list, alias="externalMCPs")
    quality_requirements: PlanQualityRequirements = Field(
        default_factory=PlanQualityRequirements
    )
    business_context: PlanBusinessContext = Field(default_factory=PlanBusinessContext)


# =============================================================================
# smart_write
# =============================================================================


class WriteBusinessContext(_WireModel):
    goals: List[str] = Field(default_factory=list)
    target_users: List[str] = Field(default_factory=list)
    priority: Level = Level.MEDIUM


class WriteQualityRequirements(_WireModel):
    test_coverage: float = Field(default=85, ge=0, le=100)
    complexity: int = Field(default=5, ge=1, le=10)
    security_level: Level = Level.MEDIUM


class SmartWriteInput(_WireModel):
    project_id: str = Field(..., min_length=1)
    feature_description: str = Field(..., min_length=1)
    target_role: Role = Role.DEVELOPER
    code_type: CodeType = CodeType.FUNCTION
    tech_stack: List[str] = Field(default_factory=list)
    business_context: WriteBusinessContext = Field(default_factory=WriteBusinessContext)
    quality_requirements: WriteQualityRequirements = Field(
        default_factory=WriteQualityRequirements
    )


# =============================================================================
# smart_finish
# =============================================================================


class QualityGateThresholds(_WireModel):
    test_coverage: float = Field(default=85, ge=0, le=100)
    security_score: float = Field(default=90, ge=0, le=100)
    complexity_score: float = Field(default=70, ge=0, le=100)
    maintainability_score: float = Field(default=70, ge=0, le=100)


class BusinessRequirements(_WireModel):
    cost_prevention: float = Field(default=10000, ge=0)
    time_saved: float = Field(default=2, ge=0, description="Hours")
    user_satisfaction: float = Field(default=90, ge=0, le=100)


class ProductionReadiness(_WireModel):
    security_scan: bool = True
    performance_test: bool = True
    documentation_complete: bool = True
    deployment_ready: bool = True


class SmartFinishInput(_WireModel):
    project_id: str = Field(..., min_length=1)
    code_ids: List[str] = Field(..., min_length=1)
    quality_gates: QualityGateThresholds = Field(default_factory=QualityGateThresholds)
    business_requirements: BusinessRequirements = Field(default_factory=BusinessRequirements)
    production_readiness: ProductionReadiness = Field(default_factory=ProductionReadiness)


# =============================================================================
# smart_orchestrate
# =============================================================================


class MarketContext(_WireModel):
    industry: Optional[str] = None
    target_market: Optional[str] = None
    competitors: List[str] = Field(default_factory=list)


class SuccessCriteria(_WireModel):
    metrics: List[str] = Field(default_factory=list)
    criteria: List[str] = Field(default_factory=list)


class OrchestrationBusinessContext(_WireModel):
    project_id: str = "default-project"
    business_goals: List[str] = Field(default_factory=list)
    requirements: List[str] = Field(default_factory=list)
    stakeholders: List[str] = Field(default_factory=list)
    constraints: Dict[str, Any] = Field(default_factory=dict)
    market_context: Optional[MarketContext] = None
    success: SuccessCriteria = Field(default_factory=SuccessCriteria)


class OrchestrationOptions(_WireModel):
    skip_phases: List[str] = Field(default_factory=list)
    focus_areas: List[str] = Field(default_factory=list)
    time_estimate: Optional[float] = None
    cost_prevention: bool = True
    quality_level: QualityLevel = QualityLevel.STANDARD
    business_context: Optional[OrchestrationBusinessContext] = None


class ExternalSources(_WireModel):
    use_context7: bool = True
    use_web_search: bool = True
    use_memory: bool = True


class SmartOrchestrateInput(_WireModel):
    request: str = Field(..., min_length=10, description="What to build, in a sentence")
    options: OrchestrationOptions = Field(default_factory=OrchestrationOptions)
    workflow: WorkflowType = WorkflowType.SDLC
    external_sources: ExternalSources = Field(default_factory=ExternalSources)


# =============================================================================
# smart_converse
# =============================================================================


class SmartConverseInput(_WireModel):
    user_message: str = Field(..., min_length=1)


__all__ = [
    "Level",
    "PlanType",
    "IntegrationType",
    "Role",
    "CodeType",
    "QualityLevel",
    "WorkflowType",
    "SmartBeginInput",
    "Timeline",
    "Resources",
    "PlanScope",
    "ExternalMCP",
    "PerformanceTargets",
    "PlanQualityRequirements",
    "PlanBusinessContext",
    "SmartPlanInput",
    "WriteBusinessContext",
    "WriteQualityRequirements",
    "SmartWriteInput",
    "QualityGateThresholds",
    "BusinessRequirements",
    "ProductionReadiness",
    "SmartFinishInput",
    "MarketContext",
    "SuccessCriteria",
    "OrchestrationBusinessContext",
    "OrchestrationOptions",
    "ExternalSources",
    "SmartOrchestrateInput",
    "SmartConverseInput",
]
