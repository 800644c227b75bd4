from enum import Enum
from pydantic import BaseModel


class PlanTier(str, Enum):
    free = "free"
    pro = "pro"

    @classmethod
    def parse(cls, value: str | None) -> "PlanTier":
        """Case-insensitive lookup; None means the free tier."""
        if not value:
            return cls.free
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"Unknown plan tier: {value!r}")


class PlanLimits(BaseModel):
    name: str
    quota: int                # max documents per user
    pages_per_pdf: int        # max extracted pages per document


class SubscriptionPlan(BaseModel):
    tier: PlanTier
    is_subscribed: bool
    limits: PlanLimits


PLANS: dict[PlanTier, PlanLimits] = {
    PlanTier.free: PlanLimits(name="Free", quota=10, pages_per_pdf=5),
    PlanTier.pro: PlanLimits(name="Pro", quota=50, pages_per_pdf=25),
}


def get_plan_limits(tier: PlanTier | str) -> PlanLimits:
    if not isinstance(tier, PlanTier):
        tier = PlanTier.parse(tier)
    return PLANS[tier]


def subscription_plan_for(tier: PlanTier | str) -> SubscriptionPlan:
    limits = get_plan_limits(tier)
    tier = PlanTier.parse(tier) if not isinstance(tier, PlanTier) else tier
    return SubscriptionPlan(
        tier=tier,
        is_subscribed=tier is not PlanTier.free,
        limits=limits
    )
