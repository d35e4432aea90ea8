from librium_parser.alignment.anchors import AnchorSet
from librium_parser.alignment.chunk_assignment import assign_chunks, build_chunk_payloads
from librium_parser.alignment.outline import Section
from librium_parser.chunking.chunking import ChunkingOptions
from librium_parser.parsers.models import AnchorRef


class TestAssignChunks:
    def test_local_indexes_are_dense_per_section(self, chunk_factory) -> None:
        """Chunk indexes restart at 0 for each owning section."""
        chunks = chunk_factory("a", "b", "c", "d", "e")
        anchors = AnchorSet()
        anchors.add(0, 0)
        anchors.add(1, 2)

        payloads = assign_chunks(chunks, anchors)

        assert [(p.section_order_index, p.chunk_index) for p in payloads] == [
            (0, 0),
            (0, 1),
            (1, 0),
            (1, 1),
            (1, 2),
        ]

    def test_ownership_is_monotonic(self, chunk_factory) -> None:
        """Owners never move back to an earlier anchor along the stream."""
        chunks = chunk_factory(*"abcdefghij")
        anchors = AnchorSet()
        for section, position in [(0, 0), (1, 3), (2, 3), (3, 7)]:
            anchors.add(section, position)
        anchor_of = {0: 0, 1: 3, 3: 7}

        payloads = assign_chunks(chunks, anchors)

        positions = [anchor_of[p.section_order_index] for p in payloads]
        assert positions == sorted(positions)
        assert 2 not in {p.section_order_index for p in payloads}

    def test_offsets_word_count_and_content(self, chunk_factory) -> None:
        chunks = chunk_factory("one two\n", "three\n")
        anchors = AnchorSet()
        anchors.add(0, 0)

        payloads = assign_chunks(chunks, anchors)

        assert [(p.start_offset, p.end_offset) for p in payloads] == [(0, 8), (8, 14)]
        assert [p.word_count for p in payloads] == [2, 1]
        assert payloads[1].content == "three\n"

    def test_empty_anchor_set_assigns_section_zero(self, chunk_factory) -> None:
        payloads = assign_chunks(chunk_factory("a", "b"), AnchorSet())

        assert [p.section_order_index for p in payloads] == [0, 0]
        assert [p.chunk_index for p in payloads] == [0, 1]


class TestBuildChunkPayloads:
    def test_chunking_failure_yields_no_chunks(self, make_book) -> None:
        """A failing chunker is absorbed; the response just has no chunks."""
        book = make_book(spine=["a.xhtml"], chunking_fails=True)
        sections = [Section(title="A", order_index=0, depth=0, target_ref="a.xhtml")]

        assert build_chunk_payloads(book, sections, ChunkingOptions()) == []

    def test_sections_own_chunks_from_their_anchor(
        self, make_book, chunk_factory
    ) -> None:
        chunks = chunk_factory("intro\n", "body\n", "more\n")
        book = make_book(
            spine=["a.xhtml", "b.xhtml"],
            anchors={
                "a.xhtml": AnchorRef(0, 0, chunks[0].chunk_id),
                "b.xhtml": AnchorRef(1, 0, chunks[1].chunk_id),
            },
            chunks=chunks,
        )
        sections = [
            Section(title="A", order_index=0, depth=0, target_ref="a.xhtml"),
            Section(title="B", order_index=1, depth=0, target_ref="b.xhtml"),
        ]

        payloads = build_chunk_payloads(book, sections, ChunkingOptions())

        assert [(p.section_order_index, p.chunk_index) for p in payloads] == [
            (0, 0),
            (1, 0),
            (1, 1),
        ]
