"""Configuration types for the quietcall library."""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class DebounceConfig:
    """Configuration for a debounced function.

    Invalid combinations are corrected silently rather than rejected:

    - a scheduler that runs on neither edge runs on the trailing edge;
    - ``max_wait`` is never shorter than ``interval``;
    - concurrent executions are disabled when ``delay_between_executions``
      is set, since spacing and overlap contradict each other.

    Attributes:
        interval: Debounce window in seconds.  Calls arriving within this
                  window of the previous call are merged.
        leading: Run an execution at the start of a burst.
        trailing: Run an execution at the end of a burst.
        max_wait: Maximum time in seconds a burst can postpone an execution.
                  None means no maximum wait.
        delay_between_executions: Minimum spacing in seconds between
                  consecutive executions.  None disables spacing.
        condense_executions: Merge calls into an execution that has not
                  started yet instead of queueing a new one.
        allow_concurrent_executions: Allow more than one execution in flight.
    """

    interval: float = 0.0
    leading: bool = False
    trailing: bool = False
    max_wait: float | None = None
    delay_between_executions: float | None = None
    condense_executions: bool = False
    allow_concurrent_executions: bool = False

    def __post_init__(self) -> None:
        if self.interval < 0:
            raise ValueError(f"interval must be non-negative, got {self.interval}")

        if self.delay_between_executions is not None and self.delay_between_executions < 0:
            raise ValueError(
                f"delay_between_executions must be non-negative or None, "
                f"got {self.delay_between_executions}"
            )

        # frozen dataclass: normalized values go through object.__setattr__
        if not self.leading and not self.trailing:
            object.__setattr__(self, "trailing", True)

        if self.max_wait is not None and self.max_wait < self.interval:
            object.__setattr__(self, "max_wait", self.interval)

        if self.delay_between_executions is not None and self.allow_concurrent_executions:
            object.__setattr__(self, "allow_concurrent_executions", False)
