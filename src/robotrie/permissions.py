from .trie import RuleTrie


class Permissions:
    """Allow/disallow rules for one robots.txt group."""

    def __init__(self, default_permission: bool = True):
        self.trie = RuleTrie(default_permission)

    @property
    def default_permission(self) -> bool:
        return self.trie.default_permission

    def add_path(self, path: str, rule_type: str) -> None:
        """Add a pattern from an Allow:/Disallow: line ("allow" or "disallow")."""
        self.trie.insert(path, rule_type)

    def is_allowed(self, path: str) -> bool:
        return self.trie.evaluate(path)
