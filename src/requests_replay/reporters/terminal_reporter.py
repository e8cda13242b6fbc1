from typing import Any


class TerminalReporter:
    def __init__(self, recording: dict[str, Any]) -> None:
        self.log = recording.get("log", {})

    def render(self) -> str:
        creator = self.log.get("creator", {})
        entries = self.log.get("entries", [])
        lines = [
            f"Recording: {self.log.get('_recordingName', 'unnamed')}",
            f"Created by: {creator.get('name', 'unknown')} {creator.get('version', '')}".rstrip(),
            "",
            f"Entries ({len(entries)}):",
        ]
        lines.extend(
            f"\t[{x['request']['method']}] {x['request']['url']} returns "
            f"{x['response']['status']} (order {x.get('_order', 0)})"
            for x in entries
        )
        if not entries:
            lines.append("\tNone")
        return "\n".join(lines) + "\n"

    def create(self) -> None:
        print(self.render())
