#!/usr/bin/env python3
"""
Console Calculator
Expression builder with history, memory register and keyboard mapping
"""

import argparse
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from calc_engine import ERROR_DISPLAY, EvaluationError, evaluate, format_number

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
HISTORY_DISPLAY_LIMIT = 10
OPERATOR_KEYS = '+-*/'


@dataclass
class HistoryEntry:
    expression: str
    result: str
    timestamp: datetime


class Calculator:
    """Calculator session: builds the expression string and keeps history"""

    def __init__(self):
        self.expression = ""
        self.display = "0"
        self.history: list[HistoryEntry] = []
        self.memory = 0.0
        self.is_result = False
        self.notice: Optional[str] = None
        self.last_error: Optional[str] = None

    # Input

    def input(self, value: str):
        """Append digits or parentheses; a new entry replaces a shown result"""
        if self.is_result:
            self.expression = value
            self.display = value
            self.is_result = False
            return

        self.expression += value
        if self.display == "0" and value != '.':
            self.display = value
        else:
            self.display += value

    def operator(self, op: str):
        if op not in OPERATOR_KEYS:
            raise ValueError(f"Unknown operator: {op}")

        if self.is_result:
            # continue from the shown result
            base = "" if self.display == ERROR_DISPLAY else self.display
            self.expression = base + op
            self.is_result = False
        else:
            self.expression += op
        self.display = "0"

    def decimal(self):
        if '.' not in self.display:
            self.input('.')

    def clear(self):
        self.expression = ""
        self.display = "0"
        self.is_result = False

    def backspace(self):
        if self.is_result:
            self.clear()
            return

        self.expression = self.expression[:-1]
        self.display = self.display[:-1] if len(self.display) > 1 else "0"

    # Evaluation

    def evaluate(self) -> str:
        """Evaluate the current expression and enter result mode"""
        if not self.expression:
            return self.display

        expression = self.expression
        try:
            result = evaluate(expression)
        except EvaluationError as e:
            logger.warning(f"Evaluation failed for {expression!r}: {e}")
            self.display = ERROR_DISPLAY
            self.expression = ""
            self.is_result = True
            self.notice = self.last_error = str(e)
            return self.display

        self.display = result
        self.expression = result
        self.history.insert(0, HistoryEntry(expression, result, datetime.now()))
        self.is_result = True
        self.notice = "Result saved to history"
        self.last_error = None
        logger.info(f"{expression} = {result}")
        return self.display

    # Memory register

    def _display_value(self) -> Optional[float]:
        try:
            return float(self.display)
        except ValueError:
            logger.debug(f"Display is not a number: {self.display!r}")
            return None

    def memory_clear(self):
        self.memory = 0.0
        self.notice = "Memory cleared"
        logger.info("Memory cleared")

    def memory_recall(self):
        self.input(format_number(self.memory))

    def memory_add(self):
        value = self._display_value()
        if value is None:
            return
        self.memory += value
        self.notice = "Added to memory"
        logger.info(f"Memory += {value} -> {self.memory}")

    def memory_subtract(self):
        value = self._display_value()
        if value is None:
            return
        self.memory -= value
        self.notice = "Subtracted from memory"
        logger.info(f"Memory -= {value} -> {self.memory}")

    # Keyboard

    def handle_key(self, key: str):
        """Dispatch a single key press; unknown keys are ignored"""
        if key.isdigit() or key in '()':
            self.input(key)
        elif key in OPERATOR_KEYS:
            self.operator(key)
        elif key == '.':
            self.decimal()
        elif key in ('Enter', '='):
            self.evaluate()
        elif key == 'Backspace':
            self.backspace()
        elif key.lower() == 'c':
            self.clear()

    # History

    def recent_history(self, n: int = HISTORY_DISPLAY_LIMIT) -> list[HistoryEntry]:
        return self.history[:n]

    def clear_history(self):
        self.history = []


def setup_logging(verbose: bool = False, log_file: Optional[str] = None):
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        handlers=handlers,
    )


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Four-function expression calculator")
    parser.add_argument('--verbose', '-v', action='store_true', help="log every evaluation stage")
    parser.add_argument('--log-file', help="also write logs to this file")
    return parser.parse_args(argv)


def print_help():
    print("Operators: + - * /   Parentheses: ( )")
    print("Start a line with an operator to continue from the last result.")
    print()
    print("Commands:")
    print("  help     - Show this help")
    print("  history  - Show calculation history")
    print("  clear    - Clear history and current expression")
    print("  mc mr    - Clear / recall memory")
    print("  m+ m-    - Add / subtract the display to memory")
    print("  quit     - Exit calculator")


def main(argv=None):
    args = parse_args(argv)
    setup_logging(args.verbose, args.log_file)

    calc = Calculator()
    memory_commands = {
        'mc': calc.memory_clear,
        'mr': calc.memory_recall,
        'm+': calc.memory_add,
        'm-': calc.memory_subtract,
    }

    print("=" * 60)
    print("CALCULATOR")
    print("=" * 60)
    print_help()
    print("=" * 60)
    print()

    while True:
        try:
            user_input = input("calc> ").strip()

            if not user_input:
                continue

            command = user_input.lower()
            if command == 'quit':
                print("Goodbye!")
                break
            elif command == 'help':
                print_help()
                print()
            elif command == 'history':
                if calc.history:
                    print("\nRecent calculations:")
                    for entry in calc.recent_history():
                        print(f"  [{entry.timestamp:%H:%M:%S}] {entry.expression} = {entry.result}")
                else:
                    print("No history yet")
                print()
            elif command == 'clear':
                calc.clear_history()
                calc.clear()
                print("Cleared history\n")
            elif command in memory_commands:
                calc.notice = None
                memory_commands[command]()
                if calc.notice:
                    print(calc.notice)
                print(f"= {calc.display}  (M = {format_number(calc.memory)})\n")
            else:
                calc.last_error = None
                for key in user_input:
                    calc.handle_key(key)
                calc.handle_key('Enter')

                if calc.last_error:
                    print(f"Error: {calc.last_error}\n")
                else:
                    print(f"= {calc.display}\n")

        except (KeyboardInterrupt, EOFError):
            print("\nGoodbye!")
            break
        except Exception as e:
            logger.error(f"Unexpected error in main loop: {e}")
            print(f"Unexpected error: {e}\n")


if __name__ == "__main__":
    main()
