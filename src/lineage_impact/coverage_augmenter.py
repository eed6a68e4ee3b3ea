"""Maps the files touched by a change to the tests that cover them."""

from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional

from .config import LineageConfig
from .impact_models import ImpactAnalysis, Recommendation, RecommendationType, TestCoverage
from .logger import get_logger


@dataclass
class TestFile:
    """A test file reported by the test-detection collaborator."""
    __test__ = False

    path: str
    name: str = ""
    type: str = "unknown"  # unit, integration, e2e, unknown
    framework: str = "unknown"
    test_suites: List[str] = field(default_factory=list)
    tests: List[str] = field(default_factory=list)
    covers: List[str] = field(default_factory=list)


def map_tests_to_code(test_files: List[TestFile]) -> Dict[str, List[str]]:
    """Build a source file -> covering test paths map from ``covers``."""
    coverage_map: Dict[str, List[str]] = {}
    for test_file in test_files:
        for covered in test_file.covers:
            tests = coverage_map.setdefault(covered, [])
            if test_file.path not in tests:
                tests.append(test_file.path)
    return coverage_map


def find_affected_tests(changed_files: List[str], coverage_map: Dict[str, List[str]]) -> List[str]:
    """Union of tests covering any of the changed files, in first-seen order."""
    affected: List[str] = []
    for changed in changed_files:
        for test in coverage_map.get(changed, []):
            if test not in affected:
                affected.append(test)
    return affected


class TestCoverageAugmenter:
    """Enriches an impact analysis with the tests that need attention."""
    __test__ = False

    def __init__(self, config: Optional[LineageConfig] = None):
        self.config = config or LineageConfig()
        self.logger = get_logger()

    def augment(
        self,
        analysis: ImpactAnalysis,
        test_files: List[TestFile],
        coverage_map: Optional[Dict[str, List[str]]] = None,
    ) -> ImpactAnalysis:
        """
        Add affected tests, coverage details and an update-tests recommendation.

        Args:
            analysis: Result to enrich; it is not modified
            test_files: Known test files
            coverage_map: Precomputed source file -> tests map. Built from
                ``TestFile.covers`` when omitted.

        Returns:
            New ImpactAnalysis carrying the test information
        """
        if coverage_map is None:
            coverage_map = map_tests_to_code(test_files)

        affected_tests = find_affected_tests(analysis.affected_files, coverage_map)
        coverage_by_file = {
            f: list(coverage_map[f]) for f in analysis.affected_files if coverage_map.get(f)
        }

        recommendations = list(analysis.recommendations)
        recommendation = self.recommend(affected_tests)
        if recommendation is not None:
            recommendations.append(recommendation)

        self.logger.debug(f"{len(affected_tests)} of {len(test_files)} tests affected")
        return replace(
            analysis,
            recommendations=recommendations,
            affected_tests=affected_tests,
            test_coverage=TestCoverage(
                total_tests=len(test_files),
                affected_tests=len(affected_tests),
                coverage_by_file=coverage_by_file,
            ),
        )

    def recommend(self, affected_tests: List[str]) -> Optional[Recommendation]:
        if not affected_tests:
            return None

        limit = self.config.max_listed_tests
        listed = ", ".join(affected_tests[:limit])
        more = "..." if len(affected_tests) > limit else ""
        return Recommendation(
            id="update-tests",
            type=RecommendationType.TEST_UPDATE,
            priority="high",
            title="Update Affected Tests",
            description=(
                f"{len(affected_tests)} test file(s) may need updates due to code changes: "
                f"{listed}{more}"
            ),
            affected_files=list(affected_tests),
        )
