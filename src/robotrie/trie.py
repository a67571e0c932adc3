import logging
from typing import Dict, List, Optional, Tuple

log = logging.getLogger(__name__)

ALLOW = "allow"
DISALLOW = "disallow"

WILDCARD = "*"
END_ANCHOR = "$"


class Node:
    """One position in the rule trie: outgoing edges plus two rule flags."""

    def __init__(self, edge_value: str):
        self.edge_value = edge_value
        self.children: Dict[str, "Node"] = {}
        self.allow = False
        self.disallow = False


# (offset into the path, node, verdict so far)
State = Tuple[int, Node, bool]


class RuleTrie:
    """
    Prefix trie of robots.txt patterns.

    Longer matches override shorter ones, '*' matches any run of characters
    (including none) and '$' only matches at the end of the path. Paths no
    rule speaks about get `default_permission`.
    """

    def __init__(self, default_permission: bool = True):
        self.root = Node("")
        self._default = default_permission

    @property
    def default_permission(self) -> bool:
        return self._default

    def insert(self, pattern: str, rule_kind: str) -> None:
        """Add one pattern; '*' and '$' are stored as plain edges."""
        if not pattern:
            return
        node = self.root
        for ch in pattern:
            child = node.children.get(ch)
            if child is None:
                child = node.children[ch] = Node(ch)
            node = child

        if rule_kind == ALLOW:
            node.allow = True
        elif rule_kind == DISALLOW:
            node.disallow = True
        else:
            log.error("Can't add pattern %r: unknown rule type %r", pattern, rule_kind)

    def evaluate(self, path: str) -> bool:
        """
        Walk the trie along `path` and return the verdict.

        States are (offset into path, node, verdict so far). Each one is
        resolved once through an explicit stack, so deep patterns don't hit
        the recursion limit and runs of '*' stay polynomial.
        """
        memo: Dict[State, bool] = {}
        start = (0, self.root, self._default)
        stack: List[State] = [start]
        while stack:
            state = stack[-1]
            if state in memo:
                stack.pop()
                continue
            waiting = self._resolve(path, state, memo)
            if waiting is None:
                stack.pop()
            else:
                stack.append(waiting)
        return memo[start]

    def _resolve(self, path: str, state: State, memo: Dict[State, bool]) -> Optional[State]:
        """Store the verdict for `state` in `memo`, or return the sub-state it needs first."""
        pos, node, verdict = state
        at_end = pos == len(path)

        # an exact '$' match beats everything else
        anchor = node.children.get(END_ANCHOR)
        if anchor is not None and at_end:
            if anchor.allow:
                memo[state] = True
                return None
            if anchor.disallow:
                memo[state] = False
                return None

        if node.disallow:
            verdict = False
        # allow is checked last so it wins ties
        if node.allow:
            verdict = True

        # offsets low to high, first verdict that differs from the default wins
        star = node.children.get(WILDCARD)
        if star is not None:
            for i in range(pos, len(path) + 1):
                sub = (i, star, verdict)
                if sub not in memo:
                    return sub
                if memo[sub] != self._default:
                    verdict = memo[sub]
                    break

        # end of path is checked after '*' on purpose: a trailing '*' also
        # matches the empty rest, so "/tmp*" covers "/tmp"
        if not at_end:
            child = node.children.get(path[pos])
            if child is not None:
                sub = (pos + 1, child, verdict)
                if sub not in memo:
                    return sub
                verdict = memo[sub]

        memo[state] = verdict
        return None
