#!/usr/bin/env python3
"""
Arduino Sketch Simulator Demo
=============================

This script demonstrates how to use the simulator to:
1. Look at the Python generated for a sketch
2. Run a sketch on the asyncio event loop
3. Pause, resume and stop it
4. Feed a value into an analog input

Usage:
    pip install -e .
    python examples/simulator_demo.py
"""

import asyncio

from arduino_sim import Simulator, SimulatorConfig, translate
from arduino_sim.sketches import FADE


POT_SKETCH = """
void setup() {
  pinMode(9, OUTPUT);
}

void loop() {
  int level = analogRead(A0);
  analogWrite(9, map(level, 0, 1023, 0, 255));
  Serial.println(level);
  delay(100);
}
"""


async def main():
    # ==========================================================================
    # 1. Transpile a sketch
    # ==========================================================================
    translation = translate(FADE, "fade.ino")
    print("Generated Python for fade.ino:")
    print(translation.python_source)

    # ==========================================================================
    # 2. Create a simulator and run a sketch in the background
    # ==========================================================================
    sim = Simulator(
        SimulatorConfig(random_seed=1),
        on_pin_change=lambda pin, value, pwm: print(f"  pin {pin}: value={value} pwm={pwm}"),
        on_log=lambda entry: print(f"  {entry.format()}"),
    )

    print("\nRunning the potentiometer sketch...")
    task = asyncio.create_task(sim.run(POT_SKETCH))
    # run() starts from a fresh pin bank, so inputs are driven after it starts
    await asyncio.sleep(0.01)
    sim.set_input("A0", 512)
    await asyncio.sleep(0.35)

    # ==========================================================================
    # 3. Pause, change the input, resume
    # ==========================================================================
    sim.pause()
    sim.set_input("A0", 1023)
    await asyncio.sleep(0.3)
    sim.resume()
    await asyncio.sleep(0.35)

    # ==========================================================================
    # 4. Stop; every pin reads LOW afterwards
    # ==========================================================================
    sim.stop()
    await task
    print(f"\nFinal state: {sim.state.name}")
    print(f"Pin 9 after stop: {sim.pins.snapshot()[9]}")


if __name__ == "__main__":
    asyncio.run(main())
