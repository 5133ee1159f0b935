"""
Condition evaluation for if steps.
A condition is a template; it holds when the rendered text is one of
1, t, true or yes (case-insensitive).
"""

from typing import Mapping

from drover.variables.template import is_true, render


class ConditionEvaluator:
    """Evaluates if-step conditions against an Environment."""

    def evaluate(self, condition: str, variables: Mapping[str, str]) -> bool:
        """
        Evaluate a condition.

        Args:
            condition: Condition template, e.g. ``{{ .RUN }}``
            variables: Environment to render against

        Returns:
            True if the nested steps should run
        """
        return is_true(render(condition, variables).strip())
