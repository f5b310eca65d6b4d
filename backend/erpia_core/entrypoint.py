from __future__ import annotations
import argparse
import logging
import os
import sys
from erpia_core.core.config import settings
from erpia_core.core.logging_config import configure_logging
from erpia_core.core.minilog import MiniLog

_log = logging.getLogger("erpia_core.entrypoint")


def _serve(args) -> int:
    import uvicorn
    from uvicorn.config import LOGGING_CONFIG
    host = args.host or os.getenv('ERPIA_HOST', '0.0.0.0')
    port = args.port or int(os.getenv('ERPIA_PORT', '8000'))
    _log.info("launching uvicorn on %s:%s folder=%s", host, port, settings.folder)
    uvicorn.run(
        'erpia_core.main:app',
        host=host,
        port=port,
        reload=False,
        log_level=settings.log_level.lower(),
        log_config=LOGGING_CONFIG,
    )
    return 0


def _print_log() -> None:
    for entry in MiniLog.read(levels=('critical', 'error', 'warning', 'notice', 'info')):
        print(f"[{entry['level']}] {entry['message']}")


def _deploy(args) -> int:
    from erpia_core.plugin_runtime import manager
    pages = manager.deploy(clean=not args.no_clean, init_controllers=True)
    manager.init_plugins()
    print(f"deployed plugins={manager.enabled_plugins()} pages={len(pages)}")
    return 0


def _toggle(args) -> int:
    from erpia_core.plugin_runtime import manager
    action = manager.enable if args.command == 'enable' else manager.disable
    ok = action(args.name)
    _print_log()
    return 0 if ok else 1


def _add(args) -> int:
    from erpia_core.plugin_runtime import manager
    ok = manager.add(args.zip, force=args.force)
    _print_log()
    return 0 if ok else 1


def _remove(args) -> int:
    from erpia_core.plugin_runtime import manager
    ok = manager.remove(args.name)
    _print_log()
    return 0 if ok else 1


def _list(args) -> int:
    from erpia_core.plugin_runtime import manager
    for plugin in manager.list_plugins(include_hidden=args.all, order_by='order' if args.by_order else 'name'):
        state = 'enabled' if plugin.enabled else 'disabled'
        flag = '' if plugin.compatible else f'  ({plugin.compatibility_message})'
        print(f"{plugin.name:<30} {plugin.version:<8} {state}{flag}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='erpia', description='ERPIA core runtime')
    sub = parser.add_subparsers(dest='command', required=True)

    serve = sub.add_parser('serve', help='run the HTTP API')
    serve.add_argument('--host')
    serve.add_argument('--port', type=int)
    serve.set_defaults(func=_serve)

    deploy = sub.add_parser('deploy', help='rebuild the dynamic namespace')
    deploy.add_argument('--no-clean', action='store_true')
    deploy.set_defaults(func=_deploy)

    for name in ('enable', 'disable'):
        p = sub.add_parser(name, help=f'{name} a plugin')
        p.add_argument('name')
        p.set_defaults(func=_toggle)

    add = sub.add_parser('add', help='install a plugin zip')
    add.add_argument('zip')
    add.add_argument('--force', action='store_true')
    add.set_defaults(func=_add)

    remove = sub.add_parser('remove', help='delete a disabled plugin')
    remove.add_argument('name')
    remove.set_defaults(func=_remove)

    lst = sub.add_parser('list', help='list installed plugins')
    lst.add_argument('--all', action='store_true', help='include hidden plugins')
    lst.add_argument('--by-order', action='store_true')
    lst.set_defaults(func=_list)
    return parser


def main(argv=None) -> int:
    configure_logging(settings.log_level)
    args = build_parser().parse_args(argv)
    if args.command != 'serve':
        from erpia_core.db.session import init_db
        init_db()
    try:
        return args.func(args)
    finally:
        if args.command != 'serve':
            MiniLog.save()


if __name__ == '__main__':  # pragma: no cover
    sys.exit(main())
