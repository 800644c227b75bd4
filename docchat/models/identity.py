from pydantic import BaseModel

from docchat.config.plans import PlanLimits, PlanTier, get_plan_limits


class Identity(BaseModel):
    """An already-verified caller. Pipelines never look the user up themselves."""
    user_id: str
    plan: PlanTier = PlanTier.free

    @property
    def limits(self) -> PlanLimits:
        return get_plan_limits(self.plan)
