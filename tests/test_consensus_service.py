from services.consensus_service import compute_consensus


def test_no_votes():
    result = compute_consensus([])
    assert result.vote_counts == {}
    assert result.consensus is None
    assert result.has_consensus is False


def test_unanimous_votes():
    result = compute_consensus(["5", "5", "5"])
    assert result.vote_counts == {"5": 3}
    assert result.consensus == "5"
    assert result.has_consensus is True


def test_split_votes_without_a_leader():
    result = compute_consensus(["5", "8"])
    assert result.vote_counts == {"5": 1, "8": 1}
    assert result.consensus is None
    assert result.has_consensus is False


def test_majority_is_reported_but_not_unanimous():
    result = compute_consensus(["5", "5", "8"])
    assert result.vote_counts == {"5": 2, "8": 1}
    assert result.consensus == "5"
    assert result.has_consensus is False


def test_tie_for_first_place_has_no_consensus():
    result = compute_consensus(["3", "3", "8", "8", "13"])
    assert result.consensus is None
    assert result.has_consensus is False


def test_single_vote_is_a_consensus():
    result = compute_consensus(["?"])
    assert result.to_dict() == {"vote_counts": {"?": 1}, "consensus": "?", "has_consensus": True}
