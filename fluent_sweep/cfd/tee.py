"""把同一份文本流同时写入多个目标（控制台与日志文件）。"""

from __future__ import annotations

from typing import List, TextIO


class TeeWriter:
    """一个输入、多个输出的文本写入器，类似 shell 中的 ``tee``。"""

    def __init__(self, *sinks: TextIO) -> None:
        self.sinks: List[TextIO] = list(sinks)

    def write(self, text: str) -> int:
        for sink in self.sinks:
            sink.write(text)
        return len(text)

    def flush(self) -> None:
        for sink in self.sinks:
            sink.flush()


__all__ = ["TeeWriter"]
