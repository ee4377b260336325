# io/graph_logging.py
import json
import logging
import sys

from corridor_map.runtime.hooks import NoopHooks


def _default_json_logger(name="corridor_map", level="INFO"):
    logger = logging.getLogger(name)
    if not logger.handlers:
        h = logging.StreamHandler(sys.stdout)

        class _JsonFormatter(logging.Formatter):
            def format(self, record: logging.LogRecord) -> str:
                payload = {
                    "level": record.levelname,
                    "msg": record.getMessage(),
                    "logger": record.name,
                }
                extra = getattr(record, "extra", None)
                if isinstance(extra, dict):
                    payload.update(extra)
                return json.dumps(payload, default=str)

        h.setFormatter(_JsonFormatter())
        logger.addHandler(h)
        logger.setLevel(level)
    return logger


class GraphLogging(NoopHooks):
    """
    Structured logs for corridor-map construction, updates and planning.
    """

    def __init__(
        self,
        run_id: str = "local",
        level: str = "INFO",
        debug: bool = False,
        sample_every: int = 1,
        logger: logging.Logger | None = None,
    ):
        self.run_id, self.debug, self.sample_every = run_id, debug, max(1, sample_every)
        self.log = logger or _default_json_logger(level=level)
        self._plans = 0

    # --------------- Helpers -----------------------------

    def _emit(self, level: str, msg: str, **extra):
        payload = {"run_id": self.run_id}
        self.log.log(getattr(logging, level), msg, extra={"extra": {**payload, **extra}})

    # --------------------------------------------------------

    # construction

    def build_start(self, *, sites, obstacles):
        self._emit("INFO", "build_start", sites=sites, obstacles=obstacles)

    def build_end(self, *, vertices, edges, ms):
        self._emit("INFO", "build_end", vertices=vertices, edges=edges, ms=round(ms, 3))

    # incremental updates

    def update_start(self, *, obstacle_id, envelope):
        self._emit("INFO", "update_start", obstacle_id=obstacle_id, envelope=list(envelope))

    def update_end(self, *, mode, removed_edges, added_edges, reason, ms):
        level = "WARNING" if mode == "rebuild" else "INFO"
        self._emit(
            level,
            "update_end",
            mode=mode,
            removed_edges=removed_edges,
            added_edges=added_edges,
            reason=reason,
            ms=round(ms, 3),
        )

    # planning

    def plan_end(self, *, found, expansions, reason, length):
        self._plans += 1
        if self.debug and (self._plans % self.sample_every) == 0:
            self._emit(
                "DEBUG", "plan_end", found=found, expansions=expansions, reason=reason, length=length
            )

    def group_plan(self, *, subgroups, agents):
        self._emit("INFO", "group_plan", subgroups=subgroups, agents=agents)

    def error(self, where: str, *, exc: BaseException, **extra):
        self._emit("ERROR", "map_error", where=where, error=str(exc), **extra)
