import pytest

from services.profile_engine.errors import TaxonomyError
from services.profile_engine.taxonomy import (
    TRAIT_DESCRIPTIONS,
    TRAIT_TO_TRIAD,
    TRIAD_SIZE,
    TRIADS,
    Domain,
    Trait,
    Triad,
    domain_traits,
    get_triad,
    validate_taxonomy,
)


def test_taxonomy_covers_every_trait_once():
    """Each of the 36 traits sits in exactly one triad of three."""
    assert len(TRIADS) == 12
    assert all(len(triad.traits) == TRIAD_SIZE for triad in TRIADS)
    members = [trait for triad in TRIADS for trait in triad.traits]
    assert len(members) == len(set(members)) == len(Trait) == 36
    assert set(TRAIT_TO_TRIAD) == set(Trait)


def test_every_domain_has_three_triads():
    for domain in Domain:
        assert len(domain_traits(domain)) == 9


def test_every_trait_has_a_description():
    assert set(TRAIT_DESCRIPTIONS) == set(Trait)
    assert all(TRAIT_DESCRIPTIONS.values())


def test_get_triad_by_key():
    triad = get_triad("External-Control")
    assert triad.traits == (Trait.STRUCTURED, Trait.AMBIVALENT, Trait.INDEPENDENT)
    assert triad.label == "External - Control"


def test_get_triad_unknown_key():
    with pytest.raises(TaxonomyError):
        get_triad("External-Nothing")


def test_validate_rejects_wrong_triad_size():
    triads = list(TRIADS[1:]) + [
        Triad(domain=Domain.EXTERNAL, name="Control", traits=(Trait.STRUCTURED, Trait.AMBIVALENT)),
    ]
    with pytest.raises(TaxonomyError, match="expected 3"):
        validate_taxonomy(triads)


def test_validate_rejects_duplicate_trait():
    duplicate = Triad(
        domain=Domain.EXTERNAL,
        name="Control",
        traits=(Trait.STRUCTURED, Trait.AMBIVALENT, Trait.PASSIVE),
    )
    with pytest.raises(TaxonomyError, match="appears in both"):
        validate_taxonomy([duplicate] + list(TRIADS[1:]))


def test_validate_rejects_missing_coverage():
    with pytest.raises(TaxonomyError, match="not covered"):
        validate_taxonomy(TRIADS[:-1])
