"""Tests for entry classification."""

from app.models.catalog import ContentType, MediaEntry
from app.models.config import ClassifierRules
from app.services.classifier import Classifier, contains_any


class TestContainsAny:

    def test_substring_match(self):
        assert contains_any("filmes de ação", ["filme"]) is True

    def test_no_match(self):
        assert contains_any("esportes", ["filme", "series"]) is False

    def test_empty_keyword_never_matches(self):
        assert contains_any("anything", [""]) is False


class TestClassifier:

    def setup_method(self):
        self.classifier = Classifier()

    def test_movie_by_group(self):
        assert self.classifier.classify("Filmes | Ação", "Matrix", "http://x/1.mp4") is ContentType.MOVIES

    def test_movie_by_name(self):
        assert self.classifier.classify("", "Matrix (Dublado)", "http://x/1.mp4") is ContentType.MOVIES

    def test_series_by_group(self):
        assert self.classifier.classify("Séries | Drama", "Lost", "http://x/1.mp4") is ContentType.SERIES

    def test_series_by_episode_marker(self):
        assert self.classifier.classify("", "Lost S01E02", "http://x/1.mp4") is ContentType.SERIES

    def test_channel_by_keyword(self):
        assert self.classifier.classify("Canais Abertos", "Globo", "http://x/1.ts") is ContentType.CHANNELS

    def test_channel_by_live_url(self):
        assert self.classifier.classify("Esportes", "Jogo", "http://x/live/1.ts") is ContentType.CHANNELS

    def test_channel_by_hls_manifest(self):
        assert self.classifier.classify("Variedades", "Algo", "http://x/stream.M3U8") is ContentType.CHANNELS

    def test_other(self):
        assert self.classifier.classify("Rádios", "Jovem Pan", "http://x/1.mp3") is ContentType.OTHER

    def test_movie_wins_over_series(self):
        assert self.classifier.classify("Filmes e Séries", "Algo", "http://x/1.mp4") is ContentType.MOVIES

    def test_series_wins_over_channel(self):
        assert self.classifier.classify("Series HD", "Algo", "http://x/1.mp4") is ContentType.SERIES

    def test_channel_keyword_and_live_url(self):
        assert self.classifier.classify("Canais", "Globo", "http://x/live/globo.m3u8") is ContentType.CHANNELS

    def test_movie_keyword_beats_live_url(self):
        assert self.classifier.classify("Filmes", "Matrix", "http://cdn/matrix.m3u8") is ContentType.MOVIES

    def test_case_insensitive(self):
        assert self.classifier.classify("FILMES", "X", "http://x") is ContentType.MOVIES

    def test_classify_entry(self):
        entry = MediaEntry(id=0, name="Lost S01E01", group="", url="http://x/1.mp4")
        assert self.classifier.classify_entry(entry) is ContentType.SERIES


class TestCustomRules:

    def test_keyword_sets_are_enumerable(self):
        rules = ClassifierRules()
        assert "filme" in rules.movie_keywords
        assert "temporada" in rules.series_keywords
        assert "24h" in rules.channel_keywords
        assert "/live/" in rules.live_url_markers

    def test_custom_keywords(self):
        rules = ClassifierRules(movie_keywords=["peliculas"], series_keywords=[], channel_keywords=[],
                                live_url_markers=[])
        classifier = Classifier(rules)
        assert classifier.classify("Peliculas", "X", "http://x") is ContentType.MOVIES
        assert classifier.classify("Filmes", "X", "http://x/live/1") is ContentType.OTHER

    def test_keywords_are_lowercased(self):
        classifier = Classifier(ClassifierRules(movie_keywords=["CINE"]))
        assert classifier.classify("cine clássico", "X", "http://x") is ContentType.MOVIES
