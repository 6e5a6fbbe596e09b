"""
Pin Bank
========

Simulated state of the board's pins: digital pins 0-13 and analog pins
A0-A5. The set of pins is fixed when the bank is created; resetting only
restores each pin's fields.

Example usage:

    >>> from arduino_sim.runtime.pins import PinBank, PinMode
    >>> bank = PinBank()
    >>> bank.get(13).mode
    <PinMode.INPUT: 'INPUT'>
    >>> "A0" in bank, 20 in bank
    (True, False)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional, Union

PinLabel = Union[int, str]

DIGITAL_PINS: tuple[int, ...] = tuple(range(14))
ANALOG_PINS: tuple[str, ...] = ("A0", "A1", "A2", "A3", "A4", "A5")
ALL_PINS: tuple[PinLabel, ...] = DIGITAL_PINS + ANALOG_PINS

PWM_MAX = 255
ANALOG_MAX = 1023


class PinMode(str, Enum):
    """Pin direction as set by pinMode(); values are the dialect's mode labels."""
    INPUT = "INPUT"
    OUTPUT = "OUTPUT"
    INPUT_PULLUP = "INPUT_PULLUP"


@dataclass
class Pin:
    """
    State of a single pin.

    Attributes:
        label: 0-13 for digital pins, "A0"-"A5" for analog pins
        mode: Direction set by pinMode()
        digital_value: 0 or 1; 1 whenever pwm_value > 0
        pwm_value: Duty level 0-255 set by analogWrite()
        input_value: Externally driven reading (0-1023), None when floating
    """
    label: PinLabel
    mode: PinMode = PinMode.INPUT
    digital_value: int = 0
    pwm_value: int = 0
    input_value: Optional[int] = None

    def reset(self) -> None:
        self.mode = PinMode.INPUT
        self.digital_value = 0
        self.pwm_value = 0
        self.input_value = None


class PinBank:
    """
    The fixed set of simulated pins.

    Labels are matched exactly: 13 and "A0" are pins, "13" and 14 are not.
    """

    def __init__(self):
        self._pins: dict[PinLabel, Pin] = {label: Pin(label) for label in ALL_PINS}

    def reset(self) -> None:
        """Restore every pin to INPUT mode with all values cleared."""
        for pin in self._pins.values():
            pin.reset()

    def __contains__(self, label: object) -> bool:
        # bool is an int subclass; True must not alias pin 1
        if isinstance(label, bool):
            return False
        try:
            return label in self._pins
        except TypeError:
            return False

    def __iter__(self) -> Iterator[Pin]:
        return iter(self._pins.values())

    def __len__(self) -> int:
        return len(self._pins)

    def get(self, label: PinLabel) -> Pin:
        """
        Return the pin with the given label.

        Raises:
            KeyError: If no such pin exists
        """
        if label not in self:
            raise KeyError(label)
        return self._pins[label]

    @property
    def labels(self) -> tuple[PinLabel, ...]:
        return ALL_PINS

    def snapshot(self) -> dict[PinLabel, tuple[int, int]]:
        """Return {label: (digital_value, pwm_value)} for every pin."""
        return {label: (pin.digital_value, pin.pwm_value) for label, pin in self._pins.items()}
