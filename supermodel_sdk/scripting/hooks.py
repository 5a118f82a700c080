from typing import Optional

from ..errors import ScriptError
from ..models.skill import Skill
from .sandbox import ScriptSandbox


def preprocess(skill: Skill, prompt: str, sandbox: Optional[ScriptSandbox] = None) -> str:
    """Apply the skill's preprocessing script; identity for prompt-only skills."""
    if not (skill.is_code_enhanced and skill.preprocessing_code):
        return prompt
    sandbox = sandbox or ScriptSandbox()
    return sandbox.run(skill.preprocessing_code, "prompt", prompt, ScriptError.PREPROCESSING)


def postprocess(skill: Skill, response: str, sandbox: Optional[ScriptSandbox] = None) -> str:
    """Apply the skill's postprocessing script; identity for prompt-only skills."""
    if not (skill.is_code_enhanced and skill.postprocessing_code):
        return response
    sandbox = sandbox or ScriptSandbox()
    return sandbox.run(skill.postprocessing_code, "response", response, ScriptError.POSTPROCESSING)
