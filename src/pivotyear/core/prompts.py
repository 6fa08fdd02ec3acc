"""The 365-day prompt catalog - pure data, no I/O."""

from dataclasses import dataclass
from functools import lru_cache

DAYS_IN_YEAR = 365
DAYS_PER_MONTH = 30
LAST_MONTH_DAYS = 35


@dataclass(frozen=True)
class Theme:
    """A monthly theme."""

    title: str
    description: str


@dataclass(frozen=True)
class PromptRecord:
    """A single day's prompt."""

    day: int
    theme: str
    theme_desc: str
    text: str

    @property
    def question(self) -> str:
        """Prompt text without the leading "Day N: Theme. " label."""
        _, sep, rest = self.text.partition(". ")
        return rest if sep and rest else self.text


MONTHLY_THEMES: tuple[Theme, ...] = (
    Theme("The Pivot", "Recognizing the gap between who you are and who you want to be."),
    Theme("Detachment", "Letting go of the old self, the past, and what no longer serves."),
    Theme("Identity", "Discovering the person you are becoming underneath the layers."),
    Theme("Uncertainty", "Learning to trust the void and the unknown."),
    Theme("Action", "Making microshifts and taking small, consistent steps."),
    Theme("Boundaries", "Protecting your energy and choosing your environment."),
    Theme("Healing", "Addressing the shadows and the roots of your fears."),
    Theme("Worthiness", "Accepting abundance, love, and the good you deserve."),
    Theme("Purpose", "Finding what lights you up and aligning with your truth."),
    Theme("Presence", "Living in the eternal now; mindfulness as a tool."),
    Theme("Resilience", "Overcoming setbacks and trusting your inner mountain."),
    Theme("The Arrival", "Integration, reflection, and stepping into your new reality."),
)

PROMPT_TEMPLATES: tuple[str, ...] = (
    "What is one microshift you can make today to align with this theme?",
    "If you were not afraid of the outcome, what choice would you make right now?",
    "Describe the version of you that has already mastered this.",
    "What old narrative is trying to keep you small today?",
    "Where do you feel resistance in your body when you think about this?",
    "Who in your life represents this quality to you? What can you learn from them?",
    "What would you tell your younger self about this struggle?",
    "If today was the only day that mattered, how would you spend it?",
    "What are you waiting for permission to do?",
    "Write a letter to the future you who has made it through this phase.",
    "What is the most compassionate thing you can do for yourself today?",
    "How does staying in your comfort zone actually hurt you?",
    "What does your intuition whisper when the noise of the world gets quiet?",
    "Identify one thing you are holding onto that is too heavy.",
    "If your life was a story, what would the chapter title be right now?",
    "What is the gap between your actions and your desires today?",
    "How can you validate your own feelings without needing others to understand?",
    "What feels like a 'failure' that might actually be a redirection?",
    "Imagine your energy is currency. What did you spend it on today?",
    "What is one truth you are avoiding?",
    "How can you be the person you want to be, just for the next hour?",
    "What expectation can you drop today to feel lighter?",
    "Reflect on a time you pivoted before. What strength did you gain?",
    "What does 'enough' look like to you right now?",
    "If you stripped away your job and relationships, who are you?",
    "What is the most honest thing you can say to yourself today?",
    "How are you self-sabotaging? Be gentle but honest.",
    "What would it look like to trust the timing of your life completely?",
    "What is one small promise you can keep to yourself today?",
    "Breathe deeply. What does your heart need you to know?",
)

# Hand-written prompts for the first, middle and last day (0-based index).
MILESTONE_PROMPTS: dict[int, str] = {
    0: "Day 1: The Pivot. Identify the gap. Where are you now, and where do you desperately want to be?",
    182: "Day 183: The Halfway Point. Look back at who you were on Day 1. What has shifted?",
    364: "Day 365: The Completion. You have lived a lifetime in a year. Who are you now?",
}


def generate_prompts() -> list[PromptRecord]:
    """
    Build the full 365-day catalog.

    Pure function - no I/O. Every month gets 30 days except the last, which
    gets 35. Templates rotate by day-of-month.
    """
    prompts = []
    day = 1

    for month_index, theme in enumerate(MONTHLY_THEMES):
        days_in_month = LAST_MONTH_DAYS if month_index == len(MONTHLY_THEMES) - 1 else DAYS_PER_MONTH
        for i in range(days_in_month):
            template = PROMPT_TEMPLATES[i % len(PROMPT_TEMPLATES)]
            prompts.append(
                PromptRecord(
                    day=day,
                    theme=theme.title,
                    theme_desc=theme.description,
                    text=f"Day {day}: {theme.title}. {template}",
                )
            )
            day += 1

    for index, text in MILESTONE_PROMPTS.items():
        base = prompts[index]
        prompts[index] = PromptRecord(
            day=base.day,
            theme=base.theme,
            theme_desc=base.theme_desc,
            text=text,
        )

    return prompts


@lru_cache(maxsize=1)
def all_prompts() -> tuple[PromptRecord, ...]:
    """The catalog, generated once per process."""
    return tuple(generate_prompts())


def prompt_for_day(day: int) -> PromptRecord:
    """Look up the prompt for a day (1-365)."""
    if not 1 <= day <= DAYS_IN_YEAR:
        raise ValueError(f"Day must be between 1 and {DAYS_IN_YEAR}, got {day}")
    return all_prompts()[day - 1]


def month_start_day(month_index: int) -> int:
    """First day of a theme month (0-based index), as used by month jumps."""
    return month_index * DAYS_PER_MONTH + 1


def prompts_for_month(month_index: int) -> list[PromptRecord]:
    """All prompts belonging to a theme month (0-based index)."""
    theme = MONTHLY_THEMES[month_index].title
    return [p for p in all_prompts() if p.theme == theme]
