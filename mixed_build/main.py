import argparse
import signal
import sys
from pathlib import Path

from mixed_build.__version__ import __version__
from mixed_build.app.pipeline import run_mixed_build
from mixed_build.config import settings
from mixed_build.domain.models import BuildOptions
from mixed_build.logging import get_logger, setup_logging
from mixed_build.storage.exceptions import (
    MissingArchiveError,
    MixedBuildError,
    UsageError,
)
from mixed_build.storage.validation import (
    resolve_otatools_zip,
    validate_optional_file,
    validate_vendor_version_pair,
)

log = get_logger(source=__name__)

DESCRIPTION = """\
Create a mixed build by combining the system image of one build with the
device images of another. SYSTEM_BUILD_DIR holds the system target-files
archive (*-target_files-*.zip); DEVICE_BUILD_DIR holds the device image
archive (*-img-*.zip) and target-files archive. The output directory mirrors
DEVICE_BUILD_DIR with the device image archive replaced by the merged one.
"""


class ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises UsageError instead of exiting with status 2."""

    def error(self, message):
        raise UsageError(message)


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="mixed-build",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v", "--vendor-version", metavar="VENDOR_VERSION",
        help="Vendor version the system image is modified for (requires -m)",
    )
    parser.add_argument(
        "-m", "--modify-script", metavar="MODIFY_SCRIPT", type=Path,
        help="Script that modifies the system target-files archive (requires -v)",
    )
    parser.add_argument(
        "-t", "--otatools", metavar="OTATOOLS_ZIP", type=Path, dest="otatools_zip",
        help="otatools.zip providing checkvintf; enables the VINTF compatibility check",
    )
    parser.add_argument(
        "-p", "--vbmeta", metavar="VBMETA_OVERRIDE", type=Path, dest="vbmeta_override",
        help="vbmeta.img to use instead of the system build's",
    )
    parser.add_argument(
        "-b", "--boot", metavar="BOOT_OVERRIDE", type=Path, dest="boot_override",
        help="boot.img to replace the device build's",
    )
    parser.add_argument(
        "-s", "--include-product", action="store_true",
        help="Also take product.img from the system build",
    )
    parser.add_argument(
        "-d", "--skip-vbmeta-replace", action="store_true",
        help="Keep the device build's vbmeta.img",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug output")
    parser.add_argument("--log-dir", type=Path, help="Also write log files to this directory")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("system_dir", metavar="SYSTEM_BUILD_DIR", type=Path)
    parser.add_argument("device_dir", metavar="DEVICE_BUILD_DIR", type=Path)
    parser.add_argument("out_dir", metavar="OUT_DIR", type=Path)
    return parser


def resolve_options(args: argparse.Namespace) -> BuildOptions:
    """Validate parsed arguments and turn them into BuildOptions.

    Raises:
        UsageError: For inconsistent or missing inputs
    """
    validate_vendor_version_pair(args.vendor_version, args.modify_script)
    return BuildOptions(
        system_dir=args.system_dir.resolve(),
        device_dir=args.device_dir.resolve(),
        out_dir=args.out_dir.resolve(),
        vendor_version=args.vendor_version,
        modify_script=validate_optional_file("-m", args.modify_script),
        vbmeta_override=validate_optional_file("-p", args.vbmeta_override),
        boot_override=validate_optional_file("-b", args.boot_override),
        otatools_zip=resolve_otatools_zip(args.otatools_zip),
        include_product=args.include_product,
        skip_vbmeta_replace=args.skip_vbmeta_replace,
    )


def _raise_on_sigterm(signum, frame):
    raise SystemExit(128 + signum)


def _fail(parser: ArgumentParser, error: Exception, show_usage: bool) -> None:
    print(f"error: {error}", file=sys.stderr)
    if show_usage:
        parser.print_help(sys.stderr)
    sys.exit(1)


def main(argv=None):
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except UsageError as error:
        _fail(parser, error, show_usage=True)

    try:
        setup_logging(verbose=args.verbose, log_dir=args.log_dir or settings.get_path("log_dir"))
        signal.signal(signal.SIGTERM, _raise_on_sigterm)
        options = resolve_options(args)
        output = run_mixed_build(options)
    except (UsageError, MissingArchiveError) as error:
        _fail(parser, error, show_usage=True)
    except MixedBuildError as error:
        _fail(parser, error, show_usage=False)
    except OSError as error:
        _fail(parser, error, show_usage=False)
    else:
        log.success(f"Mixed build written to {output}")


if __name__ == "__main__":
    main()
