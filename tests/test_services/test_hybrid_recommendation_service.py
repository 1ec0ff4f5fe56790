"""Unit tests for HybridRecommendationService."""
import threading
import time
from unittest.mock import Mock

import pandas as pd
import pytest

from hybrid_recommendation_service.errors import (
    ConfigurationFailure,
    ContentNotFound,
    NotFound,
    ProfileNotFound,
)
from hybrid_recommendation_service.ml.types import ContentItem
from hybrid_recommendation_service.services.hybrid_recommendation_service import (
    EngineState,
    HybridRecommendationService,
)


class TestHybridRecommendationServiceInit:
    """Tests for HybridRecommendationService initialization."""

    def test_init_with_default_values(self, mock_catalog_store):
        """Test initialization with default parameters."""
        # Act
        service = HybridRecommendationService(catalog_store=mock_catalog_store)

        # Assert
        assert service.collaborative_weight == 0.7
        assert service.content_weight == 0.3
        assert service.state == EngineState.UNINITIALIZED
        assert service.is_ready is False
        assert service.last_error is None

    def test_init_does_not_load(self, mock_catalog_store):
        """Test that construction does not touch the catalog store."""
        # Act
        HybridRecommendationService(catalog_store=mock_catalog_store)

        # Assert
        mock_catalog_store.load_content_catalog.assert_not_called()

    def test_init_with_custom_weights(self, mock_catalog_store):
        """Test initialization with custom weights."""
        # Act
        service = HybridRecommendationService(
            catalog_store=mock_catalog_store, collaborative_weight=0.5, content_weight=0.5
        )

        # Assert
        assert service.collaborative_weight == 0.5
        assert service.content_weight == 0.5


class TestInitialize:
    """Tests for the engine lifecycle."""

    def test_initialize_builds_snapshot(self, recommendation_service):
        """Test that initialize loads catalogs and becomes ready."""
        # Act
        recommendation_service.initialize()

        # Assert
        assert recommendation_service.state == EngineState.READY
        assert recommendation_service.is_ready is True
        matrix = recommendation_service.get_interaction_matrix()
        assert matrix.shape == (4, 5)

    def test_initialize_is_noop_when_ready(self, recommendation_service, mock_catalog_store):
        """Test that a second initialize does not reload."""
        # Arrange
        recommendation_service.initialize()

        # Act
        recommendation_service.initialize()

        # Assert
        assert mock_catalog_store.load_content_catalog.call_count == 1

    def test_initialize_twice_yields_identical_results(self, recommendation_service):
        """Test idempotence of matrix, features and query results."""
        # Arrange
        recommendation_service.initialize()
        matrix = recommendation_service.get_interaction_matrix()
        features = recommendation_service.get_content_features()
        recommendations = recommendation_service.get_personalized_recommendations('p1')

        # Act
        recommendation_service.initialize(force=True)

        # Assert
        pd.testing.assert_frame_equal(recommendation_service.get_interaction_matrix(), matrix)
        assert recommendation_service.get_content_features() == features
        assert recommendation_service.get_personalized_recommendations('p1') == recommendations

    def test_refresh_reloads_catalogs(self, recommendation_service, mock_catalog_store):
        """Test that refresh always rebuilds."""
        # Arrange
        recommendation_service.initialize()
        mock_catalog_store.load_content_catalog.return_value = [ContentItem(id='only')]

        # Act
        recommendation_service.refresh()

        # Assert
        assert mock_catalog_store.load_content_catalog.call_count == 2
        assert list(recommendation_service.get_interaction_matrix().columns) == ['only']

    def test_query_initializes_implicitly(self, recommendation_service, mock_catalog_store):
        """Test that the first query builds the snapshot."""
        # Act
        recommendation_service.get_trending_content()

        # Assert
        assert recommendation_service.state == EngineState.READY
        mock_catalog_store.load_interaction_log.assert_called_once()

    def test_store_failure_raises_configuration_failure(self, recommendation_service, mock_catalog_store):
        """Test that store errors surface as ConfigurationFailure with the cause chained."""
        # Arrange
        cause = ConnectionError("database unreachable")
        mock_catalog_store.load_profile_catalog.side_effect = cause

        # Act & Assert
        with pytest.raises(ConfigurationFailure) as exc_info:
            recommendation_service.initialize()

        assert exc_info.value.__cause__ is cause
        assert recommendation_service.state == EngineState.FAILED
        assert recommendation_service.last_error is exc_info.value

    def test_failed_state_reraises_without_retrying(self, recommendation_service, mock_catalog_store):
        """Test that queries in FAILED surface the last error instead of rebuilding."""
        # Arrange
        mock_catalog_store.load_content_catalog.side_effect = OSError("boom")
        with pytest.raises(ConfigurationFailure):
            recommendation_service.initialize()

        # Act & Assert
        with pytest.raises(ConfigurationFailure):
            recommendation_service.get_personalized_recommendations('p1')
        assert mock_catalog_store.load_content_catalog.call_count == 1

    def test_explicit_initialize_recovers_from_failure(self, recommendation_service, mock_catalog_store,
                                                       sample_content_items):
        """Test that an explicit initialize retries after a failure."""
        # Arrange
        mock_catalog_store.load_content_catalog.side_effect = OSError("boom")
        with pytest.raises(ConfigurationFailure):
            recommendation_service.initialize()
        mock_catalog_store.load_content_catalog.side_effect = None
        mock_catalog_store.load_content_catalog.return_value = sample_content_items

        # Act
        recommendation_service.initialize()

        # Assert
        assert recommendation_service.state == EngineState.READY
        assert recommendation_service.last_error is None

    def test_failed_refresh_discards_previous_snapshot(self, recommendation_service, mock_catalog_store):
        """Test that a failed refresh leaves no stale snapshot behind."""
        # Arrange
        recommendation_service.initialize()
        mock_catalog_store.load_interaction_log.side_effect = TimeoutError("slow")

        # Act
        with pytest.raises(ConfigurationFailure):
            recommendation_service.refresh()

        # Assert
        assert recommendation_service.state == EngineState.FAILED
        stats = recommendation_service.get_stats()
        assert 'content_items' not in stats

    def test_duplicate_ids_keep_first_occurrence(self, make_catalog_store):
        """Test that duplicate catalog ids keep the first record."""
        # Arrange
        store = make_catalog_store(
            [{'id': 'a', 'title': 'First'}, {'id': 'a', 'title': 'Second'}],
            [{'id': 'p1'}, {'id': 'p1', 'preferences': {'genres': ['Drama']}}],
            []
        )
        service = HybridRecommendationService(catalog_store=store)

        # Act
        results = service.get_trending_content()

        # Assert
        assert [result.item.title for result in results] == ['First']
        assert list(service.get_interaction_matrix().index) == ['p1']

    def test_concurrent_initialize_builds_once(self, mock_catalog_store, sample_content_items):
        """Test that concurrent callers share one build."""
        # Arrange
        def slow_load():
            time.sleep(0.05)
            return sample_content_items

        mock_catalog_store.load_content_catalog.side_effect = slow_load
        service = HybridRecommendationService(catalog_store=mock_catalog_store)
        threads = [threading.Thread(target=service.initialize) for _ in range(5)]

        # Act
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        # Assert
        assert service.state == EngineState.READY
        assert mock_catalog_store.load_content_catalog.call_count == 1

    def test_readers_waiting_on_failed_build_do_not_rebuild(self, mock_catalog_store):
        """Test that queries queued behind a failing build surface its error."""
        # Arrange
        def slow_failing_load():
            time.sleep(0.3)
            raise OSError("catalog unavailable")

        mock_catalog_store.load_content_catalog.side_effect = slow_failing_load
        service = HybridRecommendationService(catalog_store=mock_catalog_store)
        errors = []

        def query():
            try:
                service.get_trending_content()
            except ConfigurationFailure as e:
                errors.append(e)

        threads = [threading.Thread(target=query) for _ in range(3)]

        # Act
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        # Assert
        assert mock_catalog_store.load_content_catalog.call_count == 1
        assert len(errors) == 3
        assert all(error is service.last_error for error in errors)
        assert service.state == EngineState.FAILED


class TestSnapshotViews:
    """Tests for snapshot accessors."""

    def test_interaction_matrix_values(self, recommendation_service):
        """Test accumulated weights in the matrix."""
        # Act
        matrix = recommendation_service.get_interaction_matrix()

        # Assert
        assert matrix.at['p1', 'm1'] == 3.0
        assert matrix.at['p2', 'm2'] == 5.0
        assert matrix.at['p3', 'm1'] == -5.0
        assert (matrix.loc['p4'] == 0).all()

    def test_interaction_matrix_is_a_copy(self, recommendation_service):
        """Test that callers cannot mutate the published snapshot."""
        # Arrange
        matrix = recommendation_service.get_interaction_matrix()

        # Act
        matrix.loc['p1', 'm1'] = 100.0

        # Assert
        assert recommendation_service.get_interaction_matrix().at['p1', 'm1'] == 3.0

    def test_get_watch_history(self, recommendation_service):
        """Test positive-weight watch sets."""
        assert recommendation_service.get_watch_history('p1') == ['m1', 's1']
        assert recommendation_service.get_watch_history('p3') == ['s2']
        assert recommendation_service.get_watch_history('p4') == []

    def test_get_watch_history_unknown_profile(self, recommendation_service):
        """Test NotFound for an unknown profile."""
        with pytest.raises(ProfileNotFound):
            recommendation_service.get_watch_history('nobody')


class TestSimilarUsers:
    """Tests for similar_users."""

    def test_similar_users(self, recommendation_service):
        """Test neighbors of a profile."""
        # Act
        neighbors = recommendation_service.similar_users('p1')

        # Assert
        assert [profile_id for profile_id, _ in neighbors] == ['p2']
        assert neighbors[0][1] == pytest.approx(28 / (34 * 51) ** 0.5)

    def test_similar_users_never_includes_self_or_non_positive(self, recommendation_service):
        """Test exclusion rules for every profile."""
        for profile_id in ['p1', 'p2', 'p3', 'p4']:
            neighbors = recommendation_service.similar_users(profile_id)
            assert profile_id not in [other for other, _ in neighbors]
            assert all(similarity > 0 for _, similarity in neighbors)

    def test_similar_users_cold_profile(self, recommendation_service):
        """Test that a profile without interactions has no neighbors."""
        assert recommendation_service.similar_users('p4') == []

    def test_identical_profiles_have_similarity_one(self, make_catalog_store):
        """Test that identical interaction vectors have similarity exactly 1.0."""
        # Arrange
        interactions = [
            {'profileId': profile_id, 'contentId': content_id, 'type': interaction_type}
            for profile_id in ('p1', 'p2')
            for content_id, interaction_type in (('a', 'view'), ('b', 'like'), ('c', 'unknown'))
        ]
        store = make_catalog_store(
            [{'id': 'a'}, {'id': 'b'}, {'id': 'c'}],
            [{'id': 'p1'}, {'id': 'p2'}],
            interactions
        )
        service = HybridRecommendationService(catalog_store=store)

        # Act & Assert
        assert service.similar_users('p1') == [('p2', 1.0)]
        assert service.similar_users('p2') == [('p1', 1.0)]

    def test_similar_users_unknown_profile(self, recommendation_service):
        """Test NotFound for an unknown profile."""
        with pytest.raises(ProfileNotFound):
            recommendation_service.similar_users('nobody')


class TestScores:
    """Tests for the individual score operations."""

    def test_collaborative_score(self, recommendation_service):
        """Test collaborative score from the single neighbor."""
        assert recommendation_service.collaborative_score('p1', 'm2') == pytest.approx(5.0)
        assert recommendation_service.collaborative_score('p1', 's2') == 0.0

    def test_collaborative_score_without_neighbors(self, recommendation_service):
        """Test that no neighbors means a collaborative score of 0."""
        assert recommendation_service.collaborative_score('p4', 'm1') == 0.0

    def test_collaborative_score_unknown_content(self, recommendation_service):
        """Test NotFound for an unknown content id."""
        with pytest.raises(ContentNotFound):
            recommendation_service.collaborative_score('p1', 'nothing')

    def test_content_based_score(self, recommendation_service):
        """Test content-based score for a profile and item."""
        # Act
        score = recommendation_service.content_based_score('p1', 'm2')

        # Assert
        assert score == pytest.approx(0.6 * 0.5 + 0.1 * 0.16 + 0.3 * 0.6)

    def test_content_based_score_unknown_profile(self, recommendation_service):
        """Test NotFound for an unknown profile id."""
        with pytest.raises(ProfileNotFound):
            recommendation_service.content_based_score('nobody', 'm1')

    def test_hybrid_score_uses_weights(self, mock_catalog_store):
        """Test the weighted blend."""
        # Arrange
        service = HybridRecommendationService(
            catalog_store=mock_catalog_store, collaborative_weight=0.4, content_weight=0.6
        )

        # Act & Assert
        assert service.hybrid_score(1.0, 0.5) == pytest.approx(0.7)


class TestPersonalizedRecommendations:
    """Tests for get_personalized_recommendations."""

    def test_excludes_watched_content(self, recommendation_service):
        """Test that watched content never appears."""
        # Act
        results = recommendation_service.get_personalized_recommendations('p1')

        # Assert
        ids = [result.id for result in results]
        assert 'm1' not in ids
        assert 's1' not in ids

    def test_never_returns_watched_for_any_profile(self, recommendation_service):
        """Test the watch-set exclusion for every profile."""
        for profile_id in ['p1', 'p2', 'p3', 'p4']:
            watched = set(recommendation_service.get_watch_history(profile_id))
            results = recommendation_service.get_personalized_recommendations(profile_id, 50)
            assert watched.isdisjoint(result.id for result in results)

    def test_ranking_and_components(self, recommendation_service):
        """Test hybrid ranking with collaborative and content components."""
        # Act
        results = recommendation_service.get_personalized_recommendations('p1')

        # Assert
        assert [result.id for result in results] == ['m2', 's2', 'm3']
        top = results[0]
        assert top.components['collaborative_score'] == pytest.approx(5.0)
        assert top.components['content_score'] == pytest.approx(0.496)
        assert top.score == pytest.approx(0.7 * 5.0 + 0.3 * 0.496)

    def test_disliked_content_stays_a_candidate(self, recommendation_service):
        """Test that negative-weight content is not part of the watch set."""
        # Act
        results = recommendation_service.get_personalized_recommendations('p3', 50)

        # Assert
        assert 'm1' in [result.id for result in results]

    def test_cold_start_profile_ranked_by_content_score(self, recommendation_service):
        """Test a profile without interactions or preferences."""
        # Act
        results = recommendation_service.get_personalized_recommendations('p4')

        # Assert
        assert [result.id for result in results] == ['s1', 'm1', 's2', 'm2', 'm3']
        assert all(result.components['collaborative_score'] == 0.0 for result in results)

    def test_count_limits_results(self, recommendation_service):
        """Test that count caps the result length."""
        assert len(recommendation_service.get_personalized_recommendations('p4', 2)) == 2

    def test_short_result_not_padded(self, recommendation_service):
        """Test that fewer candidates than count gives a shorter list."""
        assert len(recommendation_service.get_personalized_recommendations('p1', 10)) == 3

    def test_non_positive_count_returns_empty(self, recommendation_service):
        """Test that count <= 0 yields an empty list."""
        assert recommendation_service.get_personalized_recommendations('p1', 0) == []
        assert recommendation_service.get_personalized_recommendations('p1', -3) == []

    def test_everything_watched_returns_empty(self, make_catalog_store):
        """Test that no eligible candidates is an empty list, not an error."""
        # Arrange
        store = make_catalog_store(
            [{'id': 'a'}],
            [{'id': 'p1'}],
            [{'profileId': 'p1', 'contentId': 'a', 'type': 'view'}]
        )
        service = HybridRecommendationService(catalog_store=store)

        # Act & Assert
        assert service.get_personalized_recommendations('p1') == []

    def test_unknown_profile_raises_not_found(self, recommendation_service):
        """Test NotFound for an unknown profile carries the id."""
        # Act & Assert
        with pytest.raises(NotFound) as exc_info:
            recommendation_service.get_personalized_recommendations('ghost')

        assert isinstance(exc_info.value, ProfileNotFound)
        assert exc_info.value.profile_id == 'ghost'

    def test_single_profile_scenario(self, make_catalog_store):
        """Test a watched item is excluded and the rest ranks on content score alone."""
        # Arrange
        store = make_catalog_store(
            [
                {'id': 'A', 'genres': ['action'], 'year': 2020, 'popularity': 0.8},
                {'id': 'B', 'genres': ['action'], 'year': 2021, 'popularity': 0.6},
            ],
            [{'id': 'p1', 'preferences': {'genres': ['action']}}],
            [{'profileId': 'p1', 'contentId': 'A', 'type': 'view'}]
        )
        service = HybridRecommendationService(catalog_store=store)

        # Act
        results = service.get_personalized_recommendations('p1', 5)

        # Assert
        assert [result.id for result in results] == ['B']
        assert results[0].components['collaborative_score'] == 0.0
        assert results[0].components['content_score'] == pytest.approx(0.864)
        assert results[0].score == pytest.approx(0.3 * 0.864)

    def test_ties_keep_catalog_order(self, make_catalog_store):
        """Test stable tie-break by catalog order."""
        # Arrange
        store = make_catalog_store(
            [{'id': 'z'}, {'id': 'a'}, {'id': 'm'}],
            [{'id': 'p1'}],
            []
        )
        service = HybridRecommendationService(catalog_store=store)

        # Act
        results = service.get_personalized_recommendations('p1')

        # Assert
        assert [result.id for result in results] == ['z', 'a', 'm']


class TestSimilarContent:
    """Tests for get_similar_content."""

    def test_ranking(self, recommendation_service):
        """Test ordering by content similarity."""
        # Act
        results = recommendation_service.get_similar_content('m1')

        # Assert
        assert [result.id for result in results] == ['m2', 's1', 'm3', 's2']
        assert results[0].score == pytest.approx(0.6 * (2 / 3) + 0.3 * 0.82 + 0.1)
        assert results[0].components['genre_score'] == pytest.approx(2 / 3)
        assert results[0].components['year_score'] == pytest.approx(0.82)
        assert results[0].components['type_score'] == 1.0

    def test_excludes_reference_item(self, recommendation_service):
        """Test that the queried item never appears in its own results."""
        for content_id in ['m1', 'm2', 's1', 's2', 'm3']:
            results = recommendation_service.get_similar_content(content_id, 50)
            assert content_id not in [result.id for result in results]
            assert len(results) == 4

    def test_identical_attributes_score_one(self, make_catalog_store):
        """Test that matching genres, type and year give similarity 1.0."""
        # Arrange
        store = make_catalog_store(
            [
                {'id': 'a', 'genres': ['Drama', 'Crime'], 'year': 2010, 'type': 'series'},
                {'id': 'b', 'genres': ['Crime', 'Drama'], 'year': 2010, 'type': 'series'},
                {'id': 'c', 'genres': ['Comedy'], 'year': 1980},
            ],
            [],
            []
        )
        service = HybridRecommendationService(catalog_store=store)

        # Act
        results = service.get_similar_content('a')

        # Assert
        assert results[0].id == 'b'
        assert results[0].score == 1.0

    def test_count_limits_results(self, recommendation_service):
        """Test that count caps the result length."""
        assert len(recommendation_service.get_similar_content('m1', 2)) == 2

    def test_unknown_content_raises_not_found(self, recommendation_service):
        """Test NotFound for an unknown content id carries the id."""
        # Act & Assert
        with pytest.raises(ContentNotFound) as exc_info:
            recommendation_service.get_similar_content('missing')

        assert exc_info.value.content_id == 'missing'


class TestGenreAndTrending:
    """Tests for genre and trending rows."""

    def test_genre_recommendations(self, recommendation_service):
        """Test genre filtering and popularity ranking."""
        # Act
        results = recommendation_service.get_genre_recommendations('Crime')

        # Assert
        assert [result.id for result in results] == ['s1', 'm1', 'm2']
        assert results[0].score == pytest.approx(0.7 * 0.9 + 0.3 * 0.93)

    def test_genre_match_is_case_sensitive(self, recommendation_service):
        """Test exact genre matching."""
        assert recommendation_service.get_genre_recommendations('crime') == []

    def test_unknown_genre_returns_empty(self, recommendation_service):
        """Test that an unknown genre is not an error."""
        assert recommendation_service.get_genre_recommendations('Western') == []

    def test_genre_recommendations_exclude_watched(self, recommendation_service):
        """Test that the profile's watch set is excluded."""
        # Act
        results = recommendation_service.get_genre_recommendations('Crime', profile_id='p1')

        # Assert
        assert [result.id for result in results] == ['m2']

    def test_genre_recommendations_unknown_profile(self, recommendation_service):
        """Test NotFound for an unknown profile."""
        with pytest.raises(ProfileNotFound):
            recommendation_service.get_genre_recommendations('Crime', profile_id='ghost')

    def test_trending_content(self, recommendation_service):
        """Test trending ranking with the default rating for unrated content."""
        # Act
        results = recommendation_service.get_trending_content()

        # Assert
        assert [result.id for result in results] == ['s1', 'm1', 's2', 'm2', 'm3']
        assert results[-1].score == pytest.approx(0.7 * 0.5 + 0.3 * 0.5)

    def test_trending_content_count(self, recommendation_service):
        """Test that count caps the trending row."""
        assert [result.id for result in recommendation_service.get_trending_content(2)] == ['s1', 'm1']


class TestGetStats:
    """Tests for get_stats."""

    def test_stats_before_initialize(self, recommendation_service):
        """Test stats for an engine that has not been built."""
        # Act
        stats = recommendation_service.get_stats()

        # Assert
        assert stats == {
            'state': 'uninitialized',
            'weights': {'collaborative': 0.7, 'content': 0.3}
        }

    def test_stats_after_initialize(self, recommendation_service):
        """Test snapshot statistics."""
        # Arrange
        recommendation_service.initialize()

        # Act
        stats = recommendation_service.get_stats()

        # Assert
        assert stats['state'] == 'ready'
        assert stats['content_items'] == 5
        assert stats['profiles'] == 4
        assert stats['accepted_interactions'] == 7
        assert stats['discarded_interactions'] == 1
        assert stats['genres'] == ['Action', 'Comedy', 'Crime', 'Drama', 'Romance']
        assert stats['matrix_density'] == pytest.approx(7 / 20)
        assert 'loaded_at' in stats

    def test_stats_empty_catalog(self):
        """Test stats over an empty snapshot."""
        # Arrange
        store = Mock()
        store.load_content_catalog.return_value = []
        store.load_profile_catalog.return_value = []
        store.load_interaction_log.return_value = []
        service = HybridRecommendationService(catalog_store=store)
        service.initialize()

        # Act
        stats = service.get_stats()

        # Assert
        assert stats['content_items'] == 0
        assert stats['matrix_density'] == 0.0
        assert stats['genres'] == []
