import attrs


@attrs.define
class SweepResult:
    scanned: int = 0
    cancelled: int = 0
    skipped: int = 0  # lost the race to another transition
    failed: int = 0
