"""local-doc provider: full-text search over a directory of documents."""

import logging
import os
import subprocess
from typing import Any, Dict, List

from drover.callbacks import InputRequest, InputType
from drover.exceptions import ResourceError
from drover.providers.base import ResourceProviderPlugin, check_config


logger = logging.getLogger(__name__)


class LocalDocProvider(ResourceProviderPlugin):
    name = "local-doc"

    def __init__(self):
        self.path = ""

    def init(self, config: Dict[str, str]) -> None:
        check_config(config, ["path"])
        self.path = config["path"]

    def execute_command(self, command: str, callbacks) -> Any:
        if command == "search":
            return self.search(callbacks)
        return super().execute_command(command, callbacks)

    def search(self, callbacks) -> List[Dict[str, str]]:
        inputs = callbacks.request_input([
            InputRequest(name="text", description="Search text", type=InputType.TEXT),
        ])
        return [
            {
                "name": os.path.basename(doc),
                "author": "",
                "location": os.path.abspath(doc),
                "date": "",
            }
            for doc in self._grep(inputs["text"])
        ]

    def _grep(self, text: str) -> List[str]:
        logger.debug(f"Searching {self.path} for {text!r}")
        try:
            result = subprocess.run(
                ['grep', '-R', '-i', '-l', text, self.path],
                capture_output=True,
                text=True,
            )
        except OSError as e:
            raise ResourceError(f"could not run grep: {e}") from e

        # grep exits 1 when nothing matched
        if result.returncode == 1:
            return []
        if result.returncode != 0:
            raise ResourceError(f"grep failed with status {result.returncode}: {result.stderr.strip()}")
        return [line for line in result.stdout.splitlines() if line]
