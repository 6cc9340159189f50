"""Schedule parameters, amortization calculators and generation."""

from mutuos.schedule.calculator import calculate_price, calculate_sac, calculate_schedule
from mutuos.schedule.generator import GeneratedSchedule, ScheduleGenerator
from mutuos.schedule.parameters import ScheduleParameters, validate_parameters

__all__ = [
    "GeneratedSchedule",
    "ScheduleGenerator",
    "ScheduleParameters",
    "calculate_price",
    "calculate_sac",
    "calculate_schedule",
    "validate_parameters",
]
