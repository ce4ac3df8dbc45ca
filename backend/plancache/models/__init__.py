# Import all models here
from plancache.models.cached_plan import CachedPlan
from plancache.models.plan_generation_log import PlanGenerationLog
