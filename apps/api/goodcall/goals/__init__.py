from goodcall.goals.api import router
from goodcall.goals.models import Goal
from goodcall.goals.service import GoalService, calculate_current_sales, goal_service, month_bounds

__all__ = ["router", "Goal", "GoalService", "calculate_current_sales", "goal_service", "month_bounds"]
