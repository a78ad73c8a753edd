"""
Test: Repository rubric criteria (pure functions, no network).
"""
import pytest

from core.repo_rubric import (
    RepoScoreBreakdown, SourceFile, code_directories, find_readme, is_source_file,
    parse_manifest, score_code_quality, score_dependencies, score_existence,
    score_file_structure, score_readme_presence, score_readme_quality,
    score_relevant_files, summarize_feedback,
)
from services.github_api import RepoEntry


def f(path, type_="file"):
    return RepoEntry(name=path.rsplit("/", 1)[-1], path=path, type=type_)


class TestExistenceAndReadme:
    def test_existence(self):
        assert score_existence(True).score == 10
        assert score_existence(False).score == 0

    def test_readme_case_insensitive(self):
        entries = [f("readme.MD"), f("index.js")]
        assert find_readme(entries).name == "readme.MD"
        assert score_readme_presence(entries).score == 10

    def test_readme_variants(self):
        assert score_readme_presence([f("README")]).score == 10
        assert score_readme_presence([f("README.rst")]).score == 10

    def test_missing_readme(self):
        result = score_readme_presence([f("index.js")])
        assert result.score == 0
        assert result.feedback == ["Missing README.md"]

    def test_readme_directory_ignored(self):
        assert find_readme([f("readme", "dir")]) is None


class TestReadmeQuality:
    def test_empty(self):
        assert score_readme_quality("").score == 0

    def test_very_short(self):
        result = score_readme_quality("Hello")
        assert result.score == 0
        assert "README is very short" in result.feedback

    def test_long_single_paragraph(self):
        # length tier 3 + one substantial paragraph 1
        assert score_readme_quality("a" * 600).score == 4

    def test_headings(self):
        text = "# One\n## Two\n### Three\n#### Four is not counted"
        result = score_readme_quality(text)
        assert "Well-organized with headings" in result.feedback

    def test_code_block_and_links(self):
        text = "```js\nconsole.log(1)\n```\n![shot](img.png)"
        result = score_readme_quality(text)
        assert "Includes code examples" in result.feedback
        assert "Includes links/images" in result.feedback

    def test_capped_at_ten(self):
        para = "This paragraph explains the project in enough words to count. "
        text = "# A\n\n## B\n\n### C\n\n" + "\n\n".join([para * 3] * 4) + "\n\n```\ncode\n```\n\n[link](x)"
        assert score_readme_quality(text).score == 10


class TestRelevantFiles:
    def test_no_source_files(self):
        assert score_relevant_files([], ["todo"]).score == 0

    def test_no_keywords_gives_base_bonus(self):
        files = [f(f"f{i}.js") for i in range(6)]
        assert score_relevant_files(files, []).score == 15

    def test_keyword_matches(self):
        files = [f("src/todo.js"), f("src/list.js"), f("todo-item.jsx")]
        # 3 files -> 6, 2 keyword matches -> 4
        assert score_relevant_files(files, ["TODO"]).score == 10

    def test_capped_at_twenty(self):
        files = [f(f"todo{i}.js") for i in range(10)]
        assert score_relevant_files(files, ["todo"]).score == 20

    def test_source_extensions(self):
        assert is_source_file(f("main.py"))
        assert is_source_file(f("App.svelte"))
        assert not is_source_file(f("notes.txt"))
        assert not is_source_file(f("src", "dir"))


class TestCodeQuality:
    def test_no_files(self):
        assert score_code_quality([]).score == 0

    def test_all_markers_in_python(self):
        body = "import os\n\n# helper\ndef load(path):\n    try:\n        return open(path).read()\n    except OSError:\n        return ''\n"
        result = score_code_quality([SourceFile("a.py", body)])
        assert result.score == 17

    def test_markers_are_presence_based(self):
        one = score_code_quality([SourceFile("a.js", "// c\n")])
        many = score_code_quality([SourceFile("a.js", "// c\n// d\n// e\n")])
        assert one.score == many.score == 4

    def test_line_count_bonus(self):
        long_file = SourceFile("a.js", "\n".join(["x"] * 60))
        assert score_code_quality([long_file]).score == 3
        medium = SourceFile("a.js", "\n".join(["x"] * 25))
        assert score_code_quality([medium]).score == 1

    def test_capped_at_twenty(self):
        body = "import x from 'y'\n// c\nfunction a() {\ntry { a() } catch (e) {}\n}\n" + "\n" * 60
        assert score_code_quality([SourceFile("a.js", body)]).score == 20


class TestFileStructure:
    def test_full_marks(self):
        entries = [f("index.js"), f("a.js"), f("b.js"), f("c.js"), f(".gitignore"), f("src", "dir"), f("test", "dir")]
        assert score_file_structure(entries).score == 15

    def test_small_repo(self):
        # 1 file -> 1, 1 dir -> 3, main.py entry point -> 3
        assert score_file_structure([f("main.py"), f("lib", "dir")]).score == 7

    def test_empty(self):
        assert score_file_structure([]).score == 0

    def test_code_directories_limited(self):
        entries = [f(name, "dir") for name in ("src", "App", "lib", "components", "docs")]
        assert [d.name for d in code_directories(entries)] == ["src", "App", "lib"]


class TestDependencies:
    def test_no_manifest(self):
        result = score_dependencies(None, [])
        assert result.score == 0
        assert result.feedback == ["No package.json found"]

    def test_full_manifest(self):
        manifest = {
            "name": "app", "description": "d",
            "scripts": {"start": "node ."},
            "dependencies": {"express": "4"}, "devDependencies": {"jest": "29"},
        }
        assert score_dependencies(manifest, ["express"]).score == 15

    def test_keyword_overlap_both_directions(self):
        assert score_dependencies({"dependencies": {"react-dom": "18"}}, ["react"]).score == 10
        assert score_dependencies({"dependencies": {"vue": "3"}}, ["vuex"]).score == 10

    def test_empty_manifest(self):
        assert score_dependencies({}, ["x"]).score == 0

    def test_parse_manifest(self):
        assert parse_manifest('{"name": "x"}') == ({"name": "x"}, None)
        assert parse_manifest("{not json") == (None, "Could not parse package.json")
        manifest, error = parse_manifest("[1, 2]")
        assert manifest is None and error


class TestSummarizeFeedback:
    def test_zero_breakdown(self):
        assert summarize_feedback(RepoScoreBreakdown()) == ["Missing README.md", "Total score: 0/100"]

    def test_order(self):
        breakdown = RepoScoreBreakdown(10, 10, 8, 10, 9, 12, 11)
        assert summarize_feedback(breakdown) == [
            "Repository found and accessible",
            "README present",
            "Decent code structure",
            "Well-organized project",
            "Good dependency management",
            "Total score: 70/100",
        ]

    @pytest.mark.parametrize("code_quality,expected", [(15, "Good code quality"), (8, "Decent code structure")])
    def test_code_quality_tiers(self, code_quality, expected):
        assert expected in summarize_feedback(RepoScoreBreakdown(code_quality=code_quality))

    def test_total(self):
        assert RepoScoreBreakdown(10, 10, 10, 20, 20, 15, 15).total == 100
