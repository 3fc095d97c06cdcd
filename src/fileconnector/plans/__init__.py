"""
Read plans.

Exports the public API:
- ReadPlan
- FileSourceBuilder, build_plan, build_sampling_plan
- plan_from_dict, load_plan, dump_plan
"""
from .types import ReadPlan
from .builder import FileSourceBuilder, build_plan, build_sampling_plan
from .load import dump_plan, load_plan, plan_from_dict
