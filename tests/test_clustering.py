from datetime import datetime, timedelta, timezone

import pytest

from story_dedup.core.clustering import ClusterBuilder
from story_dedup.core.records import RecordFactory
from story_dedup.core.similarity import jaccard
from story_dedup.core.text import ShingleGenerator, TextNormalizer
from story_dedup.errors import ConfigError

BASE = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)
FACTORY = RecordFactory(normalizer=TextNormalizer("tr_TR", ["son", "dakika"]), shingler=ShingleGenerator(4))


def _record(url: str, title: str, hours: float = 0):
    return FACTORY.build(url, title, seen_at=BASE + timedelta(hours=hours))


def _builder(window_hours: float = 48, threshold: float = 0.8) -> ClusterBuilder:
    return ClusterBuilder(timedelta(hours=window_hours), threshold)


def _partition_urls(builder, records):
    return [[r.url for r in group] for group in builder.partition(records)]


def test_breaking_news_variants_share_a_cluster():
    records = [
        _record("https://a.com/1", "Son Dakika: İstanbul'da fırtına"),
        _record("https://b.com/1", "İstanbul'da fırtına", hours=1),
    ]

    clusters = _builder().cluster(records)

    assert len(clusters) == 1
    assert clusters[0].size == 2


def test_identical_titles_outside_window_stay_apart():
    records = [
        _record("https://a.com/1", "Meclis bütçeyi kabul etti"),
        _record("https://b.com/1", "Meclis bütçeyi kabul etti", hours=49),
    ]

    assert len(_builder(window_hours=48).cluster(records)) == 2


def test_gap_equal_to_window_is_still_compared():
    records = [
        _record("https://a.com/1", "Meclis bütçeyi kabul etti"),
        _record("https://b.com/1", "Meclis bütçeyi kabul etti", hours=48),
    ]

    assert len(_builder(window_hours=48).cluster(records)) == 1


def test_dissimilar_titles_stay_apart():
    records = [
        _record("https://a.com/1", "Ankara'da kar yağışı etkili oluyor"),
        _record("https://b.com/1", "Merkez Bankası faiz kararını açıkladı"),
    ]

    assert len(_builder().cluster(records)) == 2


def test_clusters_are_transitive_through_a_chain():
    a = _record("https://a.com/1", "ab cd ef")
    b = _record("https://b.com/1", "ab cd ef gh", hours=1)
    c = _record("https://c.com/1", "ab cd ef gh ij", hours=2)
    builder = _builder(threshold=0.6)

    assert jaccard(a.shingles, b.shingles) >= 0.6
    assert jaccard(b.shingles, c.shingles) >= 0.6
    assert jaccard(a.shingles, c.shingles) < 0.6
    assert _partition_urls(builder, [a, b, c]) == [[a.url, b.url, c.url]]


def test_chain_links_across_window_through_intermediate():
    a = _record("https://a.com/1", "Meclis bütçeyi kabul etti")
    b = _record("https://b.com/1", "Meclis bütçeyi kabul etti", hours=30)
    c = _record("https://c.com/1", "Meclis bütçeyi kabul etti", hours=60)

    assert _partition_urls(_builder(window_hours=48), [a, b, c]) == [[a.url, b.url, c.url]]


def test_empty_titles_are_never_joined():
    records = [
        _record("https://a.com/1", "Son dakika"),
        _record("https://b.com/1", "Son dakika!"),
    ]

    assert records[0].shingles == frozenset()
    assert len(_builder(threshold=0.0).cluster(records)) == 2


def test_partition_is_deterministic_and_keeps_input_order():
    records = [
        _record("https://a.com/1", "Deprem Malatya'da korkuttu", hours=3),
        _record("https://b.com/1", "Ankara'da kar yağışı", hours=1),
        _record("https://c.com/1", "Deprem Malatya'da korkuttu", hours=2),
        _record("https://d.com/1", "Ankara'da kar yağışı", hours=0),
    ]
    builder = _builder()

    first = _partition_urls(builder, records)
    assert first == _partition_urls(builder, records)
    assert first == [
        ["https://a.com/1", "https://c.com/1"],
        ["https://b.com/1", "https://d.com/1"],
    ]


def test_every_canonical_is_a_member():
    records = [
        _record("https://www.haberler.com/x", "Deprem Malatya'da korkuttu", hours=1),
        _record("https://aa.com.tr/x", "Deprem Malatya'da korkuttu", hours=2),
        _record("https://e.com/x", "Ankara'da kar yağışı"),
    ]

    clusters = _builder().cluster(records)

    assert all(c.canonical in c.records for c in clusters)
    assert clusters[0].canonical.url == "https://aa.com.tr/x"


def test_no_records_yield_no_clusters():
    assert _builder().cluster([]) == []


@pytest.mark.parametrize(
    "window,threshold",
    [(timedelta(0), 0.8), (timedelta(hours=-1), 0.8), (timedelta(hours=1), 1.5), (timedelta(hours=1), -0.1)],
)
def test_invalid_configuration_is_rejected(window, threshold):
    with pytest.raises(ConfigError):
        ClusterBuilder(window, threshold)
