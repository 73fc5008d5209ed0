"""Handlebars prompt rendering for the turn generator and world analysis."""

from collections.abc import Callable
from typing import Any

import pybars

from otherworld.models import GameState, LogEntry


_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


class PromptError(Exception):
    """Raised when a Handlebars template fails to compile or render."""


WORLD_SETTING = """\
**World Setting (Dark Cosmic Horror Cultivation):**

1. **Structure:** Universe = Time-Space Membranes (Planes).
2. **Three Treasures (Vital for Survival):**
   * **Essence (Jing):** Body/Health. The foundation.
   * **Qi (Energy):** Flowing energy (Actually Monster Mucus).
   * **Spirit (Shen):** Mind/Soul (Food for Monsters).
   * *Rule:* No Body = Essence dissipates -> Qi dissipates -> Spirit dissipates (Death).
3. **Limits (The "Fanti" Barriers):**
   * **150y:** Mortal Limit (Toxin accumulation).
   * **350y:** Golden Core Limit (Perfect Body needed).
   * **500y:** **Thunder Tribulation** (Metaphysical lightning).
   * **650y:** **Fire Tribulation** (Spontaneous combustion of Qi/Spirit).
   * **800y:** **Wind Tribulation** (Disintegration by Void Wind).
4. **Cultivation Paths:** Human Immortal (hardest, triggers Tribulations), \
Ghost Immortal (spirit bound to an artifact), Earth Immortal (bound to a \
place), Spirit Immortal (bound to faith or fear), Heavenly Immortal (risks \
being swallowed by the Planet Will).
5. **THE DARK TRUTH (Awakening):** The "Spirit World" is a dimension of \
grotesque monsters born from desires. "Qi" is their mucus. "Elixirs" are \
their excrement and corpses, full of Toxins. "Ascension" means being eaten.
6. **ENEMIES:** Mo (Demons) target cultivators to steal their Qi. Tian Mo \
(Sky Demons) are star-powered and target ALL life. Projectors are \
cultivators taken over by signals from other planes.

**Simulation Rules:**
* **Corruption:** Elixirs and shortcuts increase Toxins (Corruption). High \
corruption prevents reaching Heavenly Immortal.
* **Awakening:** Seeing the Truth leads to madness (Death) or despair.
* **Death:** Describe the cause vividly (Old age, Tribulation, Mo Attack, \
Tian Mo Massacre).\
"""

TURN_PROMPT = """\
You are the game engine for 'Otherworldly Cultivation Simulator'.
{{{world_setting}}}

**TASK: GENERATE A BATCH OF EVENTS (1 to 5 events)**

**STORYTELLING RULES:**
1. Trigger occasional Mo attacks on cultivators and rare Tian Mo massacres of all life.
2. Hint at the grotesque nature of the world (Qi sticky like mucus, elixirs smelling strange).
3. If Inherited Knowledge is provided, let it occasionally cause deja vu or guide discoveries.
4. Write in Simplified Chinese (zh-CN).

**SEQUENCE RULES:**
{{#if choice_id}}
1. The FIRST event MUST be the immediate resolution of the player's choice, with ageIncrement 0.
{{else}}
1. Generate 3 to 5 routine events about cultivation, encounters or insights, each with ageIncrement > 0.
{{/if}}
2. If a PLAYER CHOICE is needed, that event is the last one.
3. If the player dies (isDead=true), that event is the last one.

**Death Logic:**
- >150y Mortal/Qi Refining -> Dead (Old Age).
- >350y Foundation -> Dead (Old Age).
- 500y/650y/800y -> Tribulations (high chance of death).

Current State:
- Age: {{age}}
- Realm: {{{realm}}}
- Attributes: Essence={{attributes.essence}}, Qi={{attributes.qi}}, Spirit={{attributes.spirit}}, RootBone={{attributes.rootBone}}, Merit={{attributes.merit}}
- Corruption: {{corruption}}
- Awakening Level: {{awakening_level}}
- Techniques: {{{techniques}}}
- Artifacts: {{{artifacts}}}
- Previous Event: {{{previous_event}}}
{{#if inherited_knowledge}}

**INHERITED KNOWLEDGE:** The player carries scriptures or memory fragments from previous incarnations:
{{{inherited_knowledge}}}
These texts may vaguely influence events or give cryptic hints, but their contents are obscure.
{{/if}}

*** {{{action}}} ***

Return only a JSON object of this shape, no other text:
{"events": [{"log": "<narration>", "ageIncrement": <int>, \
"attributeChanges": {"essence": <int>, "qi": <int>, "spirit": <int>, "rootBone": <int>, "merit": <int>} | null, \
"newTechniques": [<str>] | null, "newArtifacts": [<str>] | null, "realmUpdate": <str> | null, \
"isDead": <bool>, "deathReason": <str> | null, "corruptionChange": <int> | null, "awakeningChange": <int> | null, \
"choiceEvent": {"id": <str>, "title": <str>, "description": <str>, "options": [{"id": <str>, "text": <str>}]} | null}]}
"""

ANALYSIS_PROMPT = """\
You are the author of the mysterious 'Scripture of the Outer Wilds' (宇外荒经).
The player character has just died without fully Awakening.

**Task:** Analyze the life log to deduce the "laws of the world" from a \
LIMITED, MORTAL perspective, and merge these deductions into the existing \
scripture.

**Rules:**
1. Tone: archaic, mysterious, slightly confused but convinced.
2. Interpret Mo attacks as trials or corrupt spirits, and Qi anomalies as \
impure energy or heavenly punishment. Look for patterns in why they died.
3. DO NOT just append. Rewrite the text so it reads as one coherent \
scripture, under 300 words.
4. Classical/literary Chinese style (文言文风格 or 半白话).

**Player's Life Log:**
{{#each history}}
[{{age}}岁] {{{text}}}
{{/each}}

**Existing Content of '宇外荒经':**
{{#if existing_scripture}}{{{existing_scripture}}}{{else}}(Empty){{/if}}

Return only the rewritten scripture text.
"""


def render_prompt(template_str: str, context: dict[str, Any]) -> str:
    """Compile and render a Handlebars template with the given context.

    Templates are cached by source string to avoid recompilation.
    """
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        return compiled(context)
    except Exception as e:
        raise PromptError(f"Template error: {e}") from e


def build_turn_context(
    state: GameState,
    choice_id: str | None = None,
    inherited_knowledge: str = "",
) -> dict[str, Any]:
    """Assemble template variables for TURN_PROMPT from a state snapshot."""
    if choice_id:
        action = f'PLAYER ACTION: RESOLVING CHOICE ID "{choice_id}".'
    else:
        action = "PLAYER ACTION: AUTO-CULTIVATING / CONTINUING JOURNEY."

    return {
        "world_setting": WORLD_SETTING,
        "age": state.age,
        "realm": state.realm,
        "attributes": state.attributes.model_dump(by_alias=True),
        "corruption": state.corruption,
        "awakening_level": state.awakening_level,
        "techniques": ", ".join(state.techniques),
        "artifacts": ", ".join(state.artifacts),
        "previous_event": state.history[-1].text if state.history else "Born",
        "inherited_knowledge": inherited_knowledge,
        "choice_id": choice_id or "",
        "action": action,
    }


def build_analysis_context(history: list[LogEntry], existing_scripture: str) -> dict[str, Any]:
    """Assemble template variables for ANALYSIS_PROMPT."""
    return {
        "history": [{"age": h.age, "text": h.text} for h in history],
        "existing_scripture": existing_scripture,
    }


def inherited_knowledge(scripture_text: str, record_text: str) -> str:
    """Combine both inheritance texts into the knowledge blob for the next life."""
    parts: list[str] = []
    if scripture_text:
        parts.append(f"[宇外荒经 Fragment]: {scripture_text}")
    if record_text:
        parts.append(f"[天外异闻箓 Fragment]: {record_text}")
    return "\n".join(parts)
