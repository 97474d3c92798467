"""
CLI Interface Module

Command-line interface for the kotsadm installer. Parses arguments, builds
DeployOptions from flags, environment and configuration file, and runs the
installer.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from .core import ClusterAuth, ConfigManager, KubeClient, setup_logging
from .core.exceptions import InstallerError, ReadinessTimeoutError
from .core.models import Action, ReconcileResult
from .main_app import KotsadmInstaller

logger = logging.getLogger(__name__)


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--namespace', '-n', help='Namespace to install kotsadm into')
    parser.add_argument('--metadata-file', dest='metadata_file',
                        help='Path to a kots.io/v1beta1 Application descriptor')
    parser.add_argument('--registry', help='Registry to pull the kotsadm image from')
    parser.add_argument('--tag', help='kotsadm image tag')
    parser.add_argument('--image-pull-secret', dest='image_pull_secret',
                        help='Image pull secret referenced by the kotsadm pod')
    parser.add_argument('--config', help='Path to an installer configuration file')
    parser.add_argument('--debug', action='store_true', default=None, help='Enable debug logging')


def create_argument_parser() -> argparse.ArgumentParser:
    """Create the argument parser"""
    parser = argparse.ArgumentParser(
        prog='kotsadm-installer',
        description='Install or upgrade the kotsadm admin console in a Kubernetes namespace.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  kotsadm-installer install --namespace my-app
  kotsadm-installer install --namespace my-app --metadata-file application.yaml --no-wait
  kotsadm-installer render --namespace my-app --output ./manifests
"""
    )
    subparsers = parser.add_subparsers(dest='command', metavar='command')
    subparsers.required = True

    install = subparsers.add_parser('install', help='Install or upgrade kotsadm in a cluster')
    _add_common_arguments(install)
    install.add_argument('--no-wait', dest='wait_for_ready', action='store_false', default=None,
                         help='Do not wait for the kotsadm pod to become ready')
    install.add_argument('--timeout', dest='timeout_seconds', type=float,
                         help='Seconds to wait for the kotsadm pod (default: 120)')
    install.add_argument('--kubeconfig', help='Path to a kubeconfig file')
    install.add_argument('--context', help='kubeconfig context to use')
    install.add_argument('--api-url', dest='api_url', help='Kubernetes API URL (requires --token)')
    install.add_argument('--token', help='Bearer token for --api-url (or KUBE_API_TOKEN)')
    install.add_argument('--skip-tls', dest='skip_tls', action='store_true', default=None,
                         help='Skip TLS certificate verification')

    render = subparsers.add_parser('render', help='Render the kotsadm manifests without touching a cluster')
    _add_common_arguments(render)
    render.add_argument('--output', '-o', help='Directory to write the documents to (default: stdout)')

    return parser


class InstallerCLI:
    """Runs the installer commands from parsed arguments"""

    def __init__(self, config_manager: Optional[ConfigManager] = None):
        self.config_manager = config_manager or ConfigManager()

    def _load_configuration(self, args: argparse.Namespace) -> None:
        if args.config:
            self.config_manager.load_config(args.config)
        self.config_manager.apply_environment()

        debug = args.debug if args.debug is not None else self.config_manager.get_value('global.debug', False)
        setup_logging(debug)

    def _deploy_overrides(self, args: argparse.Namespace) -> Dict[str, Any]:
        return {
            'namespace': args.namespace,
            'kotsadm_registry': args.registry,
            'kotsadm_tag': args.tag,
            'image_pull_secret': args.image_pull_secret,
            'application_metadata_path': args.metadata_file,
            'wait_for_ready': getattr(args, 'wait_for_ready', None),
            'timeout_seconds': getattr(args, 'timeout_seconds', None),
        }

    def install(self, args: argparse.Namespace) -> int:
        """Reconcile kotsadm against the cluster"""
        self._load_configuration(args)
        options = self.config_manager.build_deploy_options(self._deploy_overrides(args))
        connection = self.config_manager.get_connection_settings({
            'api_url': args.api_url,
            'token': args.token,
            'kubeconfig': args.kubeconfig,
            'context': args.context,
            'skip_tls': args.skip_tls,
        })

        auth = ClusterAuth(skip_tls=connection['skip_tls'])
        api_client = auth.configure_auth(connection['api_url'], connection['token'],
                                         connection['kubeconfig'], connection['context'])

        installer = KotsadmInstaller(kube=KubeClient(api_client))
        result = installer.reconcile(options)
        self._print_summary(result, options.namespace)
        return 0

    def render(self, args: argparse.Namespace) -> int:
        """Write or print the documents an install would apply"""
        self._load_configuration(args)
        options = self.config_manager.build_deploy_options(self._deploy_overrides(args))
        documents = KotsadmInstaller().render(options)

        if not args.output:
            sys.stdout.write("---\n".join(doc.decode('utf-8') for doc in documents.values()))
            return 0

        output_dir = Path(args.output)
        output_dir.mkdir(parents=True, exist_ok=True)
        for name, content in documents.items():
            (output_dir / name).write_bytes(content)
            logger.info(f"Wrote {output_dir / name}")
        return 0

    @staticmethod
    def _print_summary(result: ReconcileResult, namespace: str) -> None:
        for action in result.actions:
            if action.action != Action.UNCHANGED:
                print(f"  {action}")
        status = "ready" if result.ready else "applied"
        print(f"kotsadm {status} in namespace {namespace} "
              f"({result.scope.value.replace('_', ' ')} RBAC)")


def main(argv: Optional[List[str]] = None) -> int:
    """
    Application entry point

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = create_argument_parser()
    args = parser.parse_args(argv)
    cli = InstallerCLI()

    try:
        if args.command == 'install':
            return cli.install(args)
        return cli.render(args)
    except ReadinessTimeoutError as e:
        print(f"Error: {e}. Check the pod status with: kubectl get pods -n "
              f"{args.namespace or '<namespace>'} -l app=kotsadm", file=sys.stderr)
        return 1
    except InstallerError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nOperation cancelled.", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
