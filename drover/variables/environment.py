"""Layered key/value environment threaded through templating and steps."""

from typing import Dict, Mapping


class Environment(Dict[str, str]):
    """
    Flat string map with override rules.

    Document variables are seeded with add_variables, which never overwrites
    an existing key, so the first document in an import chain wins. Inputs
    and step results go through add_inputs and always win.
    """

    def add_variables(self, variables: Mapping[str, str]) -> None:
        for name, value in variables.items():
            if name not in self:
                self[name] = value

    def add_inputs(self, inputs: Mapping[str, str]) -> None:
        for name, value in inputs.items():
            self[name] = value

    def clone(self) -> 'Environment':
        return Environment(self)
