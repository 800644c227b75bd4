import pytest

from docchat.config.plans import PlanTier, get_plan_limits, subscription_plan_for


def test_plan_limits():
    free = get_plan_limits(PlanTier.free)
    pro = get_plan_limits("pro")

    assert (free.name, free.quota, free.pages_per_pdf) == ("Free", 10, 5)
    assert (pro.name, pro.quota, pro.pages_per_pdf) == ("Pro", 50, 25)


def test_tier_parsing():
    assert PlanTier.parse(None) is PlanTier.free
    assert PlanTier.parse(" PRO ") is PlanTier.pro
    with pytest.raises(ValueError):
        PlanTier.parse("enterprise")


def test_subscription_plan():
    assert subscription_plan_for("free").is_subscribed is False

    plan = subscription_plan_for(PlanTier.pro)
    assert plan.is_subscribed is True
    assert plan.limits.pages_per_pdf == 25
