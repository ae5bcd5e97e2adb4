from __future__ import annotations

REFINEMENT_INSTRUCTION = (
    "Refine this prompt for an AI image generator. "
    "IMPORTANT: Return ONLY the refined prompt text. Do NOT return JSON. Do NOT use tools."
)


def compose_fusion_prompt(name_a: str, name_b: str, theme: str) -> str:
    """Build the image description for fusing ``name_a`` and ``name_b``."""

    return (
        "Generate a high-fidelity, cinematic splash art of a single fused character "
        f"that combines the physical traits of League of Legends champions {name_a} and {name_b}.\n"
        "\n"
        "Reference Images Provided:\n"
        f"1. {name_a} (Base appearance)\n"
        f"2. {name_b} (Base appearance)\n"
        "\n"
        "Constraints:\n"
        "Fusion: The character must seamlessly blend features of both. "
        "It must look like one coherent entity, not two people.\n"
        f"Theme: Rigidly apply the visual markers, materials, and VFX of the {theme} universe "
        "(e.g. skin line).\n"
        "Clean: No text, logos, or UI elements.\n"
        "Composition: Center the character. High resolution, detailed background "
        "appropriate for a splash art."
    )
