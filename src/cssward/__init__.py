"""Parsing of CSS text per CSS Syntax Level 3, and matching of the parsed values against CSS value grammars, e.g. for sanitizing stylesheets."""

def _enable_declaration_parsing():
    """Augment rules to enable parsing of their blocks for declarations.

    This adds the `declarations` method to `QualifiedRule` and `AtRule`, which parses the block of the rule on demand. Because parsing is only done when the method is called, the parser itself remains compliant with CSS Syntax, which leaves the blocks of rules as component values.
    """
    from .objects import AtRule, QualifiedRule
    from .syntax.parsing import declarations
    setattr(QualifiedRule, "declarations", declarations)
    setattr(AtRule, "declarations", declarations)

def _enable_matching():
    """Augment matchers with the procedures that match them against lists of component values (see the `matching` module)."""
    from .values import Matcher
    from .matching import generate_matches, match_against
    setattr(Matcher, "generate_matches", generate_matches)
    setattr(Matcher, "match_against", match_against)

_enable_declaration_parsing()
_enable_matching()
