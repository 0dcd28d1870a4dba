"""
Utilities for grouping containers by image and rewriting image names before scanning.
"""

import logging

from ..exceptions import ImageNameFormatError


logger = logging.getLogger(__name__)


#: Separates the rules in a replacement string
RULE_SEPARATOR = ','
#: Separates the match from the replacement in a rule
MATCH_SEPARATOR = '|'


def group_containers_by_image(containers):
    """
    Return a dictionary mapping each distinct image to the list of containers using it.

    The containers for an image are kept in the order they were discovered.
    """
    images = {}
    for container in containers:
        images.setdefault(container.image, []).append(container)
    return images


def parse_replacement_rules(replacement):
    """
    Parse a replacement string of the form ``match|replacement,match|replacement``.

    Returns a list of ``(match, replacement)`` tuples in the order given. An empty string
    gives no rules. Raises ``ImageNameFormatError`` if any rule is not a single non-empty
    match and a replacement separated by ``|``.
    """
    if not replacement:
        return []
    rules = []
    for rule in replacement.split(RULE_SEPARATOR):
        parts = rule.split(MATCH_SEPARATOR)
        # An empty match would insert the replacement between every character
        if len(parts) != 2 or not parts[0]:
            raise ImageNameFormatError(f'invalid rule "{rule}"')
        rules.append(tuple(parts))
    return rules


def resolve_image_name(image_name, replacement):
    """
    Apply the replacement rules to the image name and return the rewritten name.

    Replacement is literal and global, and the rules are applied in order so that each
    rule sees the output of the previous one. If the rules are not in the right format,
    ``ImageNameFormatError`` is raised with the original name attached. The same error is
    raised if the rules rewrite the name to an empty string.
    """
    try:
        rules = parse_replacement_rules(replacement)
    except ImageNameFormatError as exc:
        raise ImageNameFormatError(exc.detail, image_name = image_name) from exc
    resolved = image_name
    for match, substitute in rules:
        logger.debug(
            f'String replacement for image name: {resolved}, match: {match}, replace: {substitute}'
        )
        resolved = resolved.replace(match, substitute)
    if image_name and not resolved:
        raise ImageNameFormatError(
            f'rules "{replacement}" resolve "{image_name}" to an empty name',
            image_name = image_name
        )
    return resolved
