# statechart/core/types.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from enum import Enum
from typing import Any, Callable, Dict, Optional, Union

StateID = str

# A leaf contributes None, a compound either a bare child id or {child: value},
# a parallel a dict holding every region.
StateValue = Optional[Union[str, Dict[str, Any]]]
Context = Dict[str, Any]
HistoryRecord = Dict[str, Any]

Guard = Callable[[Context, Any], bool]
Action = Callable[[Context, Any], None]


class NodeType(str, Enum):
    """
    The closed set of configuration node kinds. Values double as the
    accepted spellings of the ``type`` key in a machine configuration.
    """

    ATOMIC = "atomic"
    FINAL = "final"
    COMPOUND = "compound"
    PARALLEL = "parallel"
    HISTORY = "history"


WILDCARD = "*"
INIT_EVENT = "init"
DEFAULT_MAX_TRANSIENT_STEPS = 100
