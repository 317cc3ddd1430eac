"""
Location/social context from self-report annotations.

The app stores a participant's check-in as an encrypted sentence such as
`"I am at work with peers"`. `parse()` turns it into a
`(LocationContext, SocialContext)` pair; `compose()` writes the sentence
back. A sentence that does not fit the pattern yields `(None, None)`.
"""

import re
from types import MappingProxyType
from typing import Optional, Tuple

from crypto import Cipher, decrypt_or_raw
from models import LocationContext, SocialContext

ContextPair = Tuple[Optional[LocationContext], Optional[SocialContext]]

_ANNOTATION = re.compile(r"(?:i am )([ \S/]+)(alone|in [ \S/]*|with [ \S/]*)")

LOCATION_PHRASES = MappingProxyType({
    "home": LocationContext.Home,
    "in school/class": LocationContext.School,
    "at work": LocationContext.Work,
    "in clinic/hospital": LocationContext.Hospital,
    "outside": LocationContext.Outside,
    "shopping/dining": LocationContext.Shopping,
    "in bus/train/car": LocationContext.Transit,
})

SOCIAL_PHRASES = MappingProxyType({
    "alone": SocialContext.Alone,
    "with friends": SocialContext.Friends,
    "with family": SocialContext.Family,
    "with peers": SocialContext.Peers,
    "in crowd": SocialContext.Crowd,
})

_LOCATION_TEXT = MappingProxyType({v: k for k, v in LOCATION_PHRASES.items()})
_SOCIAL_TEXT = MappingProxyType({v: k for k, v in SOCIAL_PHRASES.items()})


def parse(annotation: Optional[str], cipher: Cipher) -> ContextPair:
    if not annotation:
        return None, None

    text = decrypt_or_raw(cipher, annotation).lower()
    match = _ANNOTATION.search(text)
    if match is None:
        return None, None

    # group 1 keeps the space before the social clause
    location = LOCATION_PHRASES.get(match.group(1)[:-1])
    social = SOCIAL_PHRASES.get(match.group(2))
    return location, social


def compose(
    location: Optional[LocationContext],
    social: Optional[SocialContext],
    cipher: Cipher,
) -> Optional[str]:
    if location is None and social is None:
        return None

    location_text = _LOCATION_TEXT[LocationContext(location)] if location is not None else ""
    social_text = _SOCIAL_TEXT[SocialContext(social)] if social is not None else ""
    return cipher.encrypt(f"i am {location_text} {social_text}")
