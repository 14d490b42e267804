"""
System instruction builder.

Composes a profile's persona and memory into the single instruction string
handed to a provider. Pure: identical inputs always give identical output.
"""

from models.profile import AIProfile

MEMORY_HEADER = "\n\n--- PROFILE MEMORY & CONTEXT ---"

# (attribute, label) in emission order: the compressed long-term summary
# first, then the explicit user-edited fields
MEMORY_LINES = (
    ("summary", "Past Context"),
    ("identity", "User Identity"),
    ("personality", "Preferred Tone"),
    ("behavior", "Strict Rules"),
    ("notes", "Additional Notes"),
)


def build_system_instruction(profile: AIProfile, use_memory: bool) -> str:
    """
    Build the system instruction for ``profile``.

    Args:
        profile: Profile supplying the base prompt and memory.
        use_memory: Whether the conversation has memory enabled.

    Returns:
        ``profile.system_prompt``, followed by a memory block when memory
        is enabled and at least one memory field is filled in.
    """
    instruction = profile.system_prompt
    memory = profile.memory

    if not use_memory or memory.is_empty():
        return instruction

    instruction += MEMORY_HEADER
    for attr, label in MEMORY_LINES:
        value = getattr(memory, attr)
        if value:
            instruction += f"\n{label}: {value}"
    return instruction
