from typing import Callable, Dict

from services.profile_engine.models import FrameworkName, FrameworkResult
from services.profile_engine.vector import TraitVector
from services.profile_engine.frameworks.alignment import calculate_alignment
from services.profile_engine.frameworks.attachment import calculate_attachment
from services.profile_engine.frameworks.bigfive import calculate_big_five
from services.profile_engine.frameworks.enneagram import calculate_enneagram
from services.profile_engine.frameworks.holland import calculate_holland
from services.profile_engine.frameworks.integral import calculate_integral
from services.profile_engine.frameworks.mbti import calculate_mbti
from services.profile_engine.frameworks.socionics import calculate_socionics

FrameworkFunction = Callable[[TraitVector], FrameworkResult]

FRAMEWORKS: Dict[FrameworkName, FrameworkFunction] = {
    FrameworkName.MBTI: calculate_mbti,
    FrameworkName.ENNEAGRAM: calculate_enneagram,
    FrameworkName.BIG_FIVE: calculate_big_five,
    FrameworkName.HOLLAND: calculate_holland,
    FrameworkName.ALIGNMENT: calculate_alignment,
    FrameworkName.ATTACHMENT: calculate_attachment,
    FrameworkName.SOCIONICS: calculate_socionics,
    FrameworkName.INTEGRAL: calculate_integral,
}

__all__ = ["FRAMEWORKS", "FrameworkFunction"]
