"""
Variable storage and expression evaluation for Yarn dialogue
"""

import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Union

logger = logging.getLogger(__name__)

Value = Union[float, int, bool, str]

NUMBER_PATTERN = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


def _is_number(value: Any) -> bool:
    # bool is an int subclass but never counts as a number here
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _to_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class VariableStorage:
    """Storage for dialogue variables.

    Variables are written ``$name`` in scripts. The ``$`` is optional in every
    accessor and is never stored.

    Example::

        storage = VariableStorage()
        storage.set_number("friendship", 50)
        storage.set_bool("$hasKey", True)

        storage.get_number("$friendship")  # 50.0
        storage.evaluate_condition("$hasKey and $friendship >= 50")  # True
    """

    COMPARISON_OPERATORS = ("==", "!=", ">=", "<=", ">", "<")
    COMPOUND_OPERATORS = ("+=", "-=", "*=", "/=")

    def __init__(self, initial: Optional[Mapping[str, Value]] = None):
        self._variables: Dict[str, Value] = {}
        if initial:
            self.load_from_json(initial)

    @staticmethod
    def _normalize(name: str) -> str:
        name = name.strip()
        return name[1:] if name.startswith("$") else name

    @property
    def variable_names(self) -> List[str]:
        return list(self._variables.keys())

    def get_number(self, name: str, default: float = 0.0) -> float:
        """Get a variable as a number, or ``default`` if missing or not numeric"""
        value = self._variables.get(self._normalize(name))
        if _is_number(value):
            return float(value)
        return default

    def get_int(self, name: str, default: int = 0) -> int:
        value = self._variables.get(self._normalize(name))
        if _is_number(value):
            return int(value)
        return default

    def get_bool(self, name: str, default: bool = False) -> bool:
        """Get a variable as a boolean.

        Numbers are true when nonzero, strings when non-empty and not "false".
        """
        value = self._variables.get(self._normalize(name))
        if isinstance(value, bool):
            return value
        if _is_number(value):
            return value != 0
        if isinstance(value, str):
            return bool(value) and value.lower() != "false"
        return default

    def get_string(self, name: str, default: str = "") -> str:
        value = self._variables.get(self._normalize(name))
        if value is not None:
            return _to_text(value)
        return default

    def get_value(self, name: str, default: Any = None) -> Any:
        return self._variables.get(self._normalize(name), default)

    def has_variable(self, name: str) -> bool:
        return self._normalize(name) in self._variables

    def set_number(self, name: str, value: float):
        self._variables[self._normalize(name)] = value

    def set_bool(self, name: str, value: bool):
        self._variables[self._normalize(name)] = value

    def set_string(self, name: str, value: str):
        self._variables[self._normalize(name)] = value

    def set_value(self, name: str, value: Value):
        """Set a variable, keeping whatever type the value has"""
        self._variables[self._normalize(name)] = value

    def remove(self, name: str):
        self._variables.pop(self._normalize(name), None)

    def clear(self):
        self._variables.clear()

    def to_json(self) -> Dict[str, Value]:
        """Export all variables (names without ``$``) for saving"""
        return dict(self._variables)

    def load_from_json(self, data: Mapping[str, Value]):
        """Replace all variables with a previously exported mapping"""
        self._variables.clear()
        for name, value in data.items():
            self._variables[self._normalize(name)] = value

    def __contains__(self, name: str) -> bool:
        return self.has_variable(name)

    def __len__(self) -> int:
        return len(self._variables)

    def evaluate_condition(self, expression: str) -> bool:
        """
        Evaluate a condition string.

        Supports variable references (``$name``), the comparisons ``==``,
        ``!=``, ``<``, ``>``, ``<=``, ``>=``, the keywords ``and``, ``or``,
        ``not`` and number, string and boolean literals. There are no
        parentheses: ``or`` splits first, then ``and``.

        Args:
            expression: The condition to evaluate

        Returns:
            True if the condition holds, False otherwise
        """
        expression = expression.strip()

        if expression.startswith("not "):
            return not self.evaluate_condition(expression[4:])

        or_index = expression.find(" or ")
        if or_index > 0:
            left, right = expression[:or_index], expression[or_index + 4 :]
            return self.evaluate_condition(left) or self.evaluate_condition(right)

        and_index = expression.find(" and ")
        if and_index > 0:
            left, right = expression[:and_index], expression[and_index + 5 :]
            return self.evaluate_condition(left) and self.evaluate_condition(right)

        for op in self.COMPARISON_OPERATORS:
            op_index = expression.find(op)
            if op_index > 0:
                left = self.evaluate_value(expression[:op_index])
                right = self.evaluate_value(expression[op_index + len(op) :])
                return self._compare(left, right, op)

        return self._is_truthy(self.evaluate_value(expression))

    def evaluate_value(self, expression: str) -> Any:
        """Resolve a literal or ``$variable`` reference to its value"""
        expression = expression.strip()

        if expression == "true":
            return True
        if expression == "false":
            return False

        if expression.startswith("$"):
            return self.get_value(expression)

        if NUMBER_PATTERN.match(expression):
            if any(c in expression for c in ".eE"):
                return float(expression)
            return int(expression)

        if len(expression) >= 2 and expression[0] == expression[-1] and expression[0] in ("'", '"'):
            return expression[1:-1]

        # Unquoted string
        return expression

    @staticmethod
    def _is_truthy(value: Any) -> bool:
        if isinstance(value, bool):
            return value
        if _is_number(value):
            return value != 0
        if isinstance(value, str):
            return len(value) > 0
        return False

    @staticmethod
    def _compare(left: Any, right: Any, op: str) -> bool:
        if left is None or right is None:
            if op == "==":
                return left is None and right is None
            if op == "!=":
                return not (left is None and right is None)
            return False

        if not (_is_number(left) and _is_number(right)):
            left, right = _to_text(left), _to_text(right)

        if op == "==":
            return left == right
        if op == "!=":
            return left != right
        if op == "<":
            return left < right
        if op == ">":
            return left > right
        if op == "<=":
            return left <= right
        if op == ">=":
            return left >= right
        return False

    def execute_set(self, expression: str):
        """Execute the body of a set command, e.g. ``$gold = 10`` or ``$gold += 5``.

        Compound operators need a numeric right side; anything else is
        ignored. A plain ``=`` stores the value with its literal type.
        """
        expression = expression.strip()

        for op in self.COMPOUND_OPERATORS:
            op_index = expression.find(op)
            if op_index > 0:
                name = expression[:op_index].strip()
                value = self.evaluate_value(expression[op_index + 2 :])
                if not _is_number(value):
                    return

                current = self.get_number(name)
                if op == "+=":
                    result = current + value
                elif op == "-=":
                    result = current - value
                elif op == "*=":
                    result = current * value
                else:
                    if value == 0:
                        logger.warning("Ignoring division by zero in '%s'", expression)
                        return
                    result = current / value

                self.set_number(name, result)
                return

        eq_index = expression.find("=")
        if eq_index > 0:
            name = expression[:eq_index].strip()
            self.set_value(name, self.evaluate_value(expression[eq_index + 1 :]))
