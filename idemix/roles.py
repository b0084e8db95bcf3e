""" Roles of an idemix identity, held as a bit mask in the ``Role`` attribute.

>>> mask = role_mask([Role.ADMIN, Role.PEER])
>>> check_role(mask, Role.PEER), check_role(mask, Role.CLIENT)
(True, False)
>>> msp_from_role(role_from_msp("CLIENT"))
'CLIENT'
"""

from enum import IntEnum


class Role(IntEnum):
    MEMBER = 1
    ADMIN = 2
    CLIENT = 4
    PEER = 8


def role_mask(roles):
    """ Combines roles into a bit mask. """
    mask = 0
    for role in roles:
        mask |= role
    return mask


def check_role(mask, role):
    """ Returns True if ``role`` is set in ``mask``. """
    return (mask & role) == role


def role_from_msp(name):
    """ Maps an MSP role name to a role value; unknown names map to MEMBER. """
    try:
        return int(Role[name])
    except KeyError:
        return int(Role.MEMBER)


def msp_from_role(value):
    """ Maps a role value to an MSP role name; anything else maps to MEMBER. """
    for role in (Role.ADMIN, Role.CLIENT, Role.PEER):
        if value == role:
            return role.name
    return Role.MEMBER.name


# --- TESTS ---


def test_role_mask():
    assert role_mask([]) == 0
    assert role_mask([Role.MEMBER]) == 1
    assert role_mask([Role.MEMBER, Role.ADMIN, Role.CLIENT, Role.PEER]) == 15


def test_check_role():
    mask = role_mask([Role.MEMBER, Role.CLIENT])
    assert check_role(mask, Role.MEMBER)
    assert check_role(mask, Role.CLIENT)
    assert not check_role(mask, Role.ADMIN)
    assert not check_role(0, Role.PEER)


def test_msp_mapping():
    for role in Role:
        assert role_from_msp(role.name) == role
        assert msp_from_role(role) == role.name
    assert role_from_msp("AUDITOR") == Role.MEMBER
    assert msp_from_role(3) == "MEMBER"
    assert msp_from_role(0) == "MEMBER"
