# Import all the models, so that Base has them before being
# imported by Alembic or used by create_all
from app.db.base_class import Base  # noqa: F401
from app.db.models.user import User  # noqa: F401
from app.db.models.plan_job import PlanJob  # noqa: F401
from app.db.models.trip import Trip  # noqa: F401
from app.db.models.trip_day import TripDay  # noqa: F401
from app.db.models.trip_stop import TripStop  # noqa: F401
from app.db.models.budget_category import BudgetCategory  # noqa: F401
from app.db.models.activity import Activity  # noqa: F401
from app.db.models.push_subscription import PushSubscription  # noqa: F401
from app.db.models.notification_log import NotificationLog  # noqa: F401
from app.db.models.request_log import RequestLog  # noqa: F401
from app.db.models.ai_usage_log import AiUsageLog  # noqa: F401
from app.db.models.rate_limit_window import RateLimitWindow  # noqa: F401
