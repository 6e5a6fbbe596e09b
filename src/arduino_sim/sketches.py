"""
Built-in Sketches
=================

Ready-to-run example sketches, selectable by name from the CLI
(``ardsim run --template blink``) or from code.

Example:
    >>> from arduino_sim.sketches import get_template
    >>> print(get_template("blink").splitlines()[0])
    void setup() {
"""

BLINK = """\
void setup() {
  pinMode(13, OUTPUT);
}

void loop() {
  digitalWrite(13, HIGH);
  delay(500);
  digitalWrite(13, LOW);
  delay(500);
}
"""

FADE = """\
int brightness = 0;
int fadeAmount = 5;

void setup() {
  pinMode(9, OUTPUT);
}

void loop() {
  analogWrite(9, brightness);
  brightness = brightness + fadeAmount;

  if (brightness <= 0 || brightness >= 255) {
    fadeAmount = -fadeAmount;
  }
  delay(30);
}
"""

SIREN = """\
void setup() {
  pinMode(12, OUTPUT);
  pinMode(13, OUTPUT);
}

void loop() {
  digitalWrite(12, HIGH);
  digitalWrite(13, LOW);
  delay(200);
  digitalWrite(12, LOW);
  digitalWrite(13, HIGH);
  delay(200);
}
"""

KNIGHT_RIDER = """\
// LEDs on pins 2 to 6
void setup() {
  for (int i = 2; i < 7; i++) {
    pinMode(i, OUTPUT);
  }
}

void loop() {
  for (int i = 2; i < 7; i++) {
    digitalWrite(i, HIGH);
    delay(50);
    digitalWrite(i, LOW);
  }
  for (int i = 5; i > 2; i--) {
    digitalWrite(i, HIGH);
    delay(50);
    digitalWrite(i, LOW);
  }
}
"""

COMPLEX = """\
// ====== LED Pins ======
// LEDs on pins 2 to 6
int leds[] = {2, 3, 4, 5, 6};
int totalLEDs = 5;

// ====== Setup ======
void setup() {
  for (int i = 0; i < totalLEDs; i++) {
    pinMode(leds[i], OUTPUT);
  }
}

// ====== Main Loop ======
void loop() {
  pattern1();  // Running light
  pattern2();  // Blink all
  pattern3();  // Bounce
  pattern4();  // Alternate
  pattern5();  // Random
}

// ====== Pattern 1: Running Light ======
void pattern1() {
  for (int i = 0; i < totalLEDs; i++) {
    digitalWrite(leds[i], HIGH);
    delay(150);
    digitalWrite(leds[i], LOW);
  }
}

// ====== Pattern 2: Blink All ======
void pattern2() {
  for (int i = 0; i < 3; i++) {
    for (int j = 0; j < totalLEDs; j++) {
      digitalWrite(leds[j], HIGH);
    }
    delay(300);

    for (int j = 0; j < totalLEDs; j++) {
      digitalWrite(leds[j], LOW);
    }
    delay(300);
  }
}

// ====== Pattern 3: Bounce ======
void pattern3() {
  for (int i = 0; i < totalLEDs; i++) {
    digitalWrite(leds[i], HIGH);
    delay(100);
    digitalWrite(leds[i], LOW);
  }

  for (int i = totalLEDs - 1; i >= 0; i--) {
    digitalWrite(leds[i], HIGH);
    delay(100);
    digitalWrite(leds[i], LOW);
  }
}

// ====== Pattern 4: Alternate LEDs ======
void pattern4() {
  for (int i = 0; i < 4; i++) {
    for (int j = 0; j < totalLEDs; j++) {
      if (j % 2 == 0)
        digitalWrite(leds[j], HIGH);
      else
        digitalWrite(leds[j], LOW);
    }
    delay(300);

    for (int j = 0; j < totalLEDs; j++) {
      if (j % 2 == 0)
        digitalWrite(leds[j], LOW);
      else
        digitalWrite(leds[j], HIGH);
    }
    delay(300);
  }

  for (int j = 0; j < totalLEDs; j++) {
    digitalWrite(leds[j], LOW);
  }
}

// ====== Pattern 5: Random Blink ======
void pattern5() {
  for (int i = 0; i < 10; i++) {
    int randLED = random(0, totalLEDs);
    digitalWrite(leds[randLED], HIGH);
    delay(100);
    digitalWrite(leds[randLED], LOW);
  }
}
"""

TEMPLATES: dict[str, str] = {
    "blink": BLINK,
    "fade": FADE,
    "siren": SIREN,
    "knight_rider": KNIGHT_RIDER,
    "complex": COMPLEX,
}


def get_template(name: str) -> str:
    """
    Return the source of a built-in sketch.

    Raises:
        KeyError: If no template has that name; the message lists the
            available names
    """
    try:
        return TEMPLATES[name]
    except KeyError:
        available = ", ".join(sorted(TEMPLATES))
        raise KeyError(f"unknown template '{name}' (available: {available})") from None
