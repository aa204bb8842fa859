import sys
import json
import logging
import argparse
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from screamguard.config import settings
from screamguard.models.schemas import AnalysisInput, Location
from screamguard.services.audio import SCENARIO_PRESETS, mock_classification
from screamguard.services.detection import get_detection_service
from screamguard.services.emergency import mock_accelerometer


def main() -> None:
    parser = argparse.ArgumentParser(description="Run a preset classification through the distress engine")
    parser.add_argument("scenario", choices=sorted(SCENARIO_PRESETS))
    parser.add_argument("--spike", action="store_true", help="attach a spiking accelerometer reading")
    parser.add_argument("--keyword", action="store_true", help='attach the keywords ["help", "stop"]')
    parser.add_argument("--lat", type=float)
    parser.add_argument("--lon", type=float)
    args = parser.parse_args()

    logging.basicConfig(level=settings.log_level.upper())

    location = None
    if args.lat is not None and args.lon is not None:
        location = Location(latitude=args.lat, longitude=args.lon)

    analysis_input = AnalysisInput(
        classification=mock_classification(args.scenario),
        accelerometer=mock_accelerometer("spike" if args.spike else "normal"),
        location=location,
        keywords=["help", "stop"] if args.keyword else None,
    )
    detector = get_detection_service()
    result = detector.analyze(analysis_input)
    print(json.dumps(result.model_dump(mode="json", exclude_none=True), indent=2))
    print(detector.explain(result))


if __name__ == "__main__":
    main()
