"""Built-in detector plugins.

Each module in this directory exports ``PATTERN`` and is loaded by
``jsrecon.scanners.patterns.load_detectors``. Modules starting with an
underscore are not detectors.
"""

from pathlib import Path

BUILTIN_DETECTOR_DIR = Path(__file__).parent
