# tests/core/test_tree_builder.py
from copycontext.core.models import Entry
from copycontext.core.tree_builder import TreeBuilder, build_tree, expand_set_for, segment_count

ENTRIES = [
    Entry("src", True),
    Entry("src/b.py", False),
    Entry("src/a", True),
    Entry("src/a/inner.py", False),
    Entry("README.md", False),
    Entry("LICENSE", False),
    Entry("docs", True),
]

def test_empty_entries_render_root_only():
    assert build_tree([], "project") == "project"
    assert build_tree([], "project", mode="smart", expand_set={"src"}) == "project"

def test_full_mode_renders_everything_dirs_first():
    expected = "\n".join([
        "project",
        "├── docs",
        "├── src",
        "│   ├── a",
        "│   │   └── inner.py",
        "│   └── b.py",
        "├── LICENSE",
        "└── README.md",
    ])
    assert build_tree(ENTRIES, "project", mode="full") == expected

def test_smart_mode_expands_only_tracked_prefixes():
    text = build_tree(ENTRIES, "project", mode="smart", expand_set={"src"})
    assert text == "\n".join([
        "project",
        "├── docs",
        "├── src",
        "│   ├── a",
        "│   └── b.py",
        "├── LICENSE",
        "└── README.md",
    ])

def test_smart_mode_without_tracked_paths_shows_top_level():
    text = build_tree(ENTRIES, "project", mode="smart", expand_set=set())
    assert text.splitlines() == ["project", "├── docs", "├── src", "├── LICENSE", "└── README.md"]

def test_last_child_continuation_uses_spaces():
    entries = [Entry("z", True), Entry("z/y", True), Entry("z/y/x.txt", False)]
    assert build_tree(entries, "r").splitlines() == ["r", "└── z", "    └── y", "        └── x.txt"]

def test_sorting_is_case_sensitive_within_group():
    entries = [Entry("b.txt", False), Entry("a.txt", False), Entry("A.txt", False), Entry("lib", True), Entry("Bin", True)]
    lines = build_tree(entries, "r").splitlines()
    names = [line[4:] for line in lines[1:]]
    assert names == ["Bin", "lib", "A.txt", "a.txt", "b.txt"]

def test_directories_before_files_at_every_level():
    entries = [Entry("m/z.txt", False), Entry("m/a", True), Entry("m/a/q.txt", False), Entry("a.txt", False), Entry("m", True)]
    builder = TreeBuilder("r").insert_all(entries)
    builder.sort()
    stack = [builder.root]
    while stack:
        node = stack.pop()
        kinds = [c.is_dir for c in node.children]
        assert kinds == sorted(kinds, reverse=True)
        for group in (True, False):
            names = [c.name for c in node.children if c.is_dir is group]
            assert names == sorted(names)
        stack.extend(node.children)

def test_file_leaf_promoted_when_seen_as_directory():
    builder = TreeBuilder("r")
    builder.insert("a/b/c", False)
    builder.insert("a/b", True)
    assert len(builder.root.children) == 1
    a = builder.root.get_child("a")
    assert a.is_dir and len(a.children) == 1
    b = a.get_child("b")
    assert b.is_dir and b.path == "a/b"
    assert [c.name for c in b.children] == ["c"]

def test_intermediate_promotion_and_idempotent_insert():
    builder = TreeBuilder("r")
    builder.insert("x", False)
    builder.insert("x/y.py", False)
    builder.insert("x/y.py", False)
    x = builder.root.get_child("x")
    assert x.is_dir
    assert [c.name for c in x.children] == ["y.py"]

def test_backslash_paths_are_normalized():
    builder = TreeBuilder("r")
    builder.insert("src\\pkg\\mod.py", False)
    assert builder.root.get_child("src").get_child("pkg").get_child("mod.py").path == "src/pkg/mod.py"

def test_expand_set_for_collects_proper_prefixes():
    assert expand_set_for(["a/b/c.py", "d.py", "a/e/f"]) == {"a", "a/b", "a/e"}
    assert expand_set_for([]) == set()

def test_segment_count():
    assert segment_count("a/b/c.py") == 3
    assert segment_count("./a/") == 1
    assert segment_count("") == 0
