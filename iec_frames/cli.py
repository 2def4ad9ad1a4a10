"""cli.py - Command Line Interface

Usage:
    iec-frames transform FROM TO [--state state.yaml] [--beam]
    iec-frames path FRAME
    iec-frames edges
"""
from __future__ import annotations

import argparse
import logging
import sys

import numpy as np

from iec_frames.config import MachineState
from iec_frames.errors import IECFrameError
from iec_frames.frames import CoordinateFrame
from iec_frames.logic import IECTransformLogic

__all__ = ['main']

logger = logging.getLogger(__name__)

def setup_logging(verbose: bool = False) -> None:
    """Configures root logging to stderr, DEBUG when verbose"""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stderr)]
    )

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='iec-frames',
        description='Transforms between IEC 61217 coordinate frames',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
    # Collimator to patient transform for a machine state
    iec-frames transform Collimator Patient --state state.yaml

    # Frames between the image grid and the fixed reference
    iec-frames path PatientImageRegularGrid

    # Declared elementary transforms
    iec-frames edges
'''
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable debug logging'
    )

    sub = parser.add_subparsers(dest='command', required=True)

    transform = sub.add_parser('transform', help='Print the 4x4 matrix between two frames')
    transform.add_argument('source', type=str, help='Source frame name')
    transform.add_argument('target', type=str, help='Target frame name')
    transform.add_argument(
        '--state', '-s',
        type=str,
        default=None,
        help='YAML machine state file (default: all joints at zero)'
    )
    transform.add_argument(
        '--beam',
        action='store_true',
        help='Compose in beam mode (no inversion from the root to the target)'
    )

    path = sub.add_parser('path', help='Print the frames from a frame up to the root')
    path.add_argument('frame', type=str, help='Frame name')

    sub.add_parser('edges', help='List declared elementary transforms')

    return parser

def main(argv: list[str] | None = None) -> int:
    """Runs the `iec-frames` command

    :param argv: Command line arguments, defaults to `sys.argv[1:]`
    :type argv: list[str] | None, optional

    :return: Exit code, 1 on unknown frames or invalid machine state files
    :rtype: int
    """
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    logic = IECTransformLogic()
    try:
        if args.command == 'transform':
            source = CoordinateFrame.parse(args.source)
            target = CoordinateFrame.parse(args.target)
            if args.state:
                logic.apply_state(MachineState.from_yaml(args.state))

            matrix = logic.transform_between(source, target, beam_mode=args.beam)
            print(logic.transform_name_between(source, target))
            print(np.array2string(matrix, precision=6, suppress_small=True))

        elif args.command == 'path':
            frame = CoordinateFrame.parse(args.frame)
            print(' -> '.join(logic.catalog.name_of(f) for f in logic.path_to_root(frame)))

        elif args.command == 'edges':
            for child, parent in logic.declared_transforms():
                print(f"{logic.catalog.name_of(child):<28}{logic.catalog.name_of(parent):<28}"
                      f"{logic.transform_name_between(child, parent)}")

    except (IECFrameError, FileNotFoundError) as err:
        logger.error("%s", err)
        return 1

    return 0

if __name__ == '__main__':
    sys.exit(main())
