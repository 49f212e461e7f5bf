#  Voice Tutor - Voice Catalogue
#
#  Realtime API voices a learner can pick from, with age-based recommendations.
#
#  Depends on: (none)
#  Used by:    services/profile.py, services/conversations.py, routes/voices.py

from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class Voice:
    id: str
    name: str
    description: str
    sample_text: str
    age_range: str  # "min-max", inclusive
    gender: str
    personality: str

    @property
    def min_age(self) -> int:
        return int(self.age_range.split("-")[0])

    @property
    def max_age(self) -> int:
        return int(self.age_range.split("-")[1])

    def suits_age(self, age: int) -> bool:
        return self.min_age <= age <= self.max_age

    def to_dict(self) -> dict:
        return asdict(self)


AVAILABLE_VOICES: tuple[Voice, ...] = (
    Voice(
        id="shimmer",
        name="Shimmer",
        description="Warm and friendly, great for younger students",
        sample_text="Hi! I'm here to help you learn and figure things out together.",
        age_range="8-12",
        gender="female",
        personality="Encouraging, warm, patient",
    ),
    Voice(
        id="ballad",
        name="Ballad",
        description="Clear and energetic, perfect for math and science",
        sample_text="Hey there! Let's tackle this problem step by step. You've got this!",
        age_range="10-14",
        gender="female",
        personality="Energetic, enthusiastic, motivating",
    ),
    Voice(
        id="alloy",
        name="Alloy",
        description="Balanced and steady, good for focused learning",
        sample_text="Hi! I'm ready to help you understand this. Let's break it down together.",
        age_range="9-13",
        gender="neutral",
        personality="Calm, steady, reliable",
    ),
    Voice(
        id="echo",
        name="Echo",
        description="Gentle and supportive, great for reading and writing",
        sample_text="Hello! Take your time, and let's work through this at your pace.",
        age_range="8-12",
        gender="neutral",
        personality="Gentle, supportive, patient",
    ),
    Voice(
        id="verse",
        name="Verse",
        description="Expressive and engaging, perfect for storytelling",
        sample_text="Hey! This is going to be fun. Let me help you discover the answer!",
        age_range="9-13",
        gender="neutral",
        personality="Expressive, engaging, creative",
    ),
    Voice(
        id="sage",
        name="Sage",
        description="Clear and wise, good for older students",
        sample_text="Hi there. Let's think critically about this problem together.",
        age_range="11-15",
        gender="neutral",
        personality="Professional, clear, focused",
    ),
)

_BY_ID = {v.id: v for v in AVAILABLE_VOICES}


def get_voice(voice_id: str | None) -> Voice | None:
    if not voice_id:
        return None
    return _BY_ID.get(voice_id)


def voice_ids() -> list[str]:
    return [v.id for v in AVAILABLE_VOICES]


def recommended_for_age(age: int) -> list[Voice]:
    """Voices whose age range covers `age`."""
    return [v for v in AVAILABLE_VOICES if v.suits_age(age)]
