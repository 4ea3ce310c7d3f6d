from abc import ABC, abstractmethod


class LoggingPort(ABC):
    """Sink for core log messages.

    Messages are tagged by pipeline stage (`[job:poll]`, `[callback]`,
    `[batch]`, ...) with `key=value` context; `*args` are %-style arguments.
    """

    @abstractmethod
    def info(self, msg: str, *args):
        pass

    @abstractmethod
    def warning(self, msg: str, *args):
        pass

    @abstractmethod
    def error(self, msg: str, *args):
        pass

    @abstractmethod
    def debug(self, msg: str, *args):
        pass
