#!/usr/bin/env python3
"""
meshauthz - cluster access checks.
Verifies the current credential can use the APIs the mesh tooling depends on.
"""

import argparse
import logging
import os
import sys
from dataclasses import replace
from typing import List, Optional

#
# NOTE: Keep meshauthz imports lazy (inside functions) so `--help` works without the
# kubernetes client installed.
#


def _configure_logging(verbose: bool) -> None:
    level_name = "DEBUG" if verbose else (os.getenv("MESHAUTHZ_LOG_LEVEL", "") or "WARNING").strip().upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def _build_checker(kubeconfig: Optional[str], context: Optional[str]):
    from meshauthz.authz.checks import AccessChecker
    from meshauthz.config import load_k8s_config
    from meshauthz.providers.k8s_provider import get_k8s_provider

    cfg = load_k8s_config()
    if kubeconfig:
        cfg = replace(cfg, kubeconfig=kubeconfig, in_cluster="never")
    if context:
        cfg = replace(cfg, context=context, in_cluster="never")
    return AccessChecker(get_k8s_provider(cfg))


def run_checks(checker, names: Optional[List[str]]) -> int:
    """Print one line per check; return the process exit code."""
    results = checker.run_checks(names)
    for r in results:
        if r.ok:
            print(f"[ok] {r.description}")
        else:
            print(f"[fail] {r.description}: {r.error}")
    return 0 if all(r.ok for r in results) else 1


def run_can_i(checker, args: argparse.Namespace) -> int:
    """Single access review; subject review when --as is given."""
    from meshauthz.authz.errors import AuthzError

    verb, resource = args.can_i
    try:
        if args.as_user or args.as_group:
            checker.resource_authz_for_user(
                namespace=args.namespace,
                verb=verb,
                group=args.group,
                version=args.api_version,
                resource=resource,
                subresource=args.subresource,
                name=args.name,
                user=args.as_user or "",
                user_groups=args.as_group or [],
            )
        else:
            checker.resource_authz(
                namespace=args.namespace,
                verb=verb,
                group=args.group,
                version=args.api_version,
                resource=resource,
                subresource=args.subresource,
                name=args.name,
            )
    except AuthzError as e:
        print(f"[fail] {e}")
        return 1
    print("[ok] yes")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    from meshauthz.authz.checks import CHECK_NAMES

    parser = argparse.ArgumentParser(
        description="Check cluster API availability and access for mesh tooling",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run all checks
  python main.py

  # Only ServiceProfile and Link access
  python main.py --check profile --check link

  # Ad-hoc access review on behalf of a user
  python main.py --can-i list pods --namespace emojivoto --as jane --as-group devs
        """,
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--check",
        action="append",
        choices=list(CHECK_NAMES),
        help="Check to run (repeatable; default: all)",
    )
    mode.add_argument("--can-i", nargs=2, metavar=("VERB", "RESOURCE"), help="Run a single access review")
    parser.add_argument("--group", default="", help="API group for --can-i (default: core)")
    parser.add_argument("--api-version", default="", help="API version for --can-i")
    parser.add_argument("--namespace", default="", help="Namespace for --can-i (default: all)")
    parser.add_argument("--name", default="", help="Resource name for --can-i")
    parser.add_argument("--subresource", default="", help="Subresource for --can-i")
    parser.add_argument("--as", dest="as_user", help="Evaluate --can-i on behalf of this user")
    parser.add_argument("--as-group", action="append", help="Group for --as (repeatable)")
    parser.add_argument("--kubeconfig", help="Path to kubeconfig (default: $KUBECONFIG)")
    parser.add_argument("--context", help="Kubeconfig context (default: $KUBE_CONTEXT or current)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging to stderr")

    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    checker = _build_checker(args.kubeconfig, args.context)

    if args.can_i:
        try:
            return run_can_i(checker, args)
        except Exception as e:
            print(f"Error during access review: {e}", file=sys.stderr)
            raise

    return run_checks(checker, args.check)


if __name__ == "__main__":
    sys.exit(main())
