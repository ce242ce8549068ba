#!/usr/bin/env python3
"""
project-tracker - project sheets with an audit trail, tasks and calendar sync.
"""

import argparse
import logging
import sys

from project_tracker.core.config import load_config, save_config, get_default_config_path
from project_tracker.sheets.grid import Workbook
from project_tracker.commands import (
    SetupCommand,
    ProjectCommand,
    TaskCommand,
    CalendarCommand,
)

CALENDAR_ACTIONS = ['create', 'enable', 'disable', 'remove', 'drift', 'resolve', 'search', 'debug', 'test']
READ_ONLY = {('history', None), ('calendar', 'drift'), ('calendar', 'search'),
             ('calendar', 'debug'), ('calendar', 'test')}


def _add_row_args(parser, required=True):
    parser.add_argument('--sheet', required=required, help='Tracked sheet name')
    parser.add_argument('--row', type=int, required=required, help='Project row (1-based, header is row 1)')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='project-tracker',
        description="Track projects with an audit log, follow-up tasks and calendar events",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  project-tracker setup
  project-tracker add-project --sheet cobuild --title "Acme rollout"
  project-tracker edit --sheet cobuild --row 2 --column 15 --value "Send proposal"
  project-tracker task add --sheet cobuild --row 2 --description "Call client" --due +7
  project-tracker calendar enable --sheet cobuild --row 2 --create
  project-tracker calendar drift --sheet cobuild
        """
    )

    default_config = get_default_config_path()
    parser.add_argument(
        '--config',
        help=f'Path to configuration file (default: {default_config})',
        default=None
    )
    parser.add_argument('--workbook', help='Path to the workbook JSON file', default=None)
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose output')

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    subparsers.add_parser('setup', help='Create the audit and tasks sheets and backfill ids')

    add_parser = subparsers.add_parser('add-project', help='Add a project row')
    add_parser.add_argument('--sheet', required=True, help='Tracked sheet name')
    add_parser.add_argument('--title', required=True, help='Project title')
    add_parser.add_argument('--status', help='Initial status (default: Not Started)')
    add_parser.add_argument('--completion-date', help='Completion date (MM/DD/YYYY or YYYY-MM-DD)')

    edit_parser = subparsers.add_parser('edit', help='Write a cell and record the change')
    _add_row_args(edit_parser)
    edit_parser.add_argument('--column', type=int, required=True, help='Column (1-based)')
    edit_parser.add_argument('--value', default='', help='New value (empty clears the cell)')

    history_parser = subparsers.add_parser('history', help='Show the change history of a field')
    _add_row_args(history_parser)
    history_parser.add_argument('--column', type=int, required=True, help='Column (1-based)')
    history_parser.add_argument('--limit', type=int, help='Maximum entries to show')

    task_parser = subparsers.add_parser('task', help='Project tasks')
    task_sub = task_parser.add_subparsers(dest='task_command')
    task_sub.required = True
    task_add = task_sub.add_parser('add', help='Add a task to a project')
    _add_row_args(task_add)
    task_add.add_argument('--description', required=True)
    task_add.add_argument('--type', default='Follow-up',
                          help='Follow-up, Milestone, Check-in or Deliverable')
    task_add.add_argument('--due', help='+N days or a date')
    task_add.add_argument('--priority', default='Low', help='High, Medium or Low')
    task_subtask = task_sub.add_parser('subtask', help='Add a subtask under a task')
    task_subtask.add_argument('--task-id', required=True)
    task_subtask.add_argument('--description', required=True)
    task_list = task_sub.add_parser('list', help="List a project's tasks")
    _add_row_args(task_list)
    task_status = task_sub.add_parser('status', help='Change a task status')
    task_status.add_argument('--task-id', required=True)
    task_status.add_argument('--status', required=True)
    task_sync = task_sub.add_parser('sync', help="Push a project's tasks to the task list")
    _add_row_args(task_sync)
    task_purge = task_sub.add_parser('purge', help='Delete tasks by status (snapshot first)')
    task_purge.add_argument('--status', required=True)

    calendar_parser = subparsers.add_parser('calendar', help='Project calendar events')
    calendar_parser.add_argument('action', choices=CALENDAR_ACTIONS)
    _add_row_args(calendar_parser, required=False)
    calendar_parser.add_argument('--policy', choices=['sheet', 'calendar'],
                                 help='Drift policy for resolve (default: from config)')
    calendar_parser.add_argument('--create', action='store_true',
                                 help='With enable: create the events right away')

    return parser


def main(argv=None):
    """Main entry point for project-tracker."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Configure logging if verbose mode is enabled
    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    if not args.command:
        parser.print_help()
        return 1

    try:
        config = load_config(args.config)

        if args.workbook:
            config.workbook_path = args.workbook
        workbook_path = config.resolved_workbook_path()
        workbook = Workbook.load(workbook_path)

        if args.verbose:
            print(f"Using config: {args.config or get_default_config_path()}")
            print(f"Using workbook: {workbook_path}")

        sub = None
        if args.command == 'setup':
            success = SetupCommand(config, workbook, verbose=args.verbose).run()
            if success:
                save_config(config, args.config)

        elif args.command == 'add-project':
            cmd = ProjectCommand(config, workbook, verbose=args.verbose)
            success = cmd.add(args.sheet, args.title, args.status, args.completion_date)

        elif args.command == 'edit':
            cmd = ProjectCommand(config, workbook, verbose=args.verbose)
            success = cmd.edit(args.sheet, args.row, args.column, args.value)

        elif args.command == 'history':
            cmd = ProjectCommand(config, workbook, verbose=args.verbose)
            success = cmd.history(args.sheet, args.row, args.column, args.limit)

        elif args.command == 'task':
            sub = args.task_command
            cmd = TaskCommand(config, workbook, verbose=args.verbose)
            if sub == 'add':
                success = cmd.add(args.sheet, args.row, args.description,
                                  task_type=args.type, due=args.due, priority=args.priority)
            elif sub == 'subtask':
                success = cmd.subtask(args.task_id, args.description)
            elif sub == 'list':
                success = cmd.list_tasks(args.sheet, args.row)
            elif sub == 'status':
                success = cmd.status(args.task_id, args.status)
            elif sub == 'sync':
                success = cmd.sync(args.sheet, args.row)
            else:
                success = cmd.purge(args.status)

        elif args.command == 'calendar':
            sub = args.action
            cmd = CalendarCommand(config, workbook, verbose=args.verbose)
            success = cmd.run(args.action, sheet_name=args.sheet, row=args.row,
                              policy=args.policy, create=args.create)

        else:
            print(f"Unknown command '{args.command}'.")
            return 1

        # Local writes are kept even when a provider step failed
        if (args.command, sub) not in READ_ONLY:
            workbook.save(workbook_path)

        return 0 if success else 1

    except KeyboardInterrupt:
        print("\nOperation cancelled by user.")
        return 130
    except Exception as e:
        print(f"Error: {e}")
        if not args.verbose:
            print("Re-run with --verbose for more detail.")
        else:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == '__main__':
    sys.exit(main())
