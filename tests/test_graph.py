"""Tests for the filter graph IR."""

import pytest

from bgcompose.media.graph import FilterGraph, GraphError, StreamKind


class TestPad:
    def test_input_pad(self):
        pad = FilterGraph.input(2)
        assert pad.is_input
        assert pad.ref() == "[2:v]"
        assert pad.map_spec() == "2:v"

    def test_audio_input_pad(self):
        pad = FilterGraph.input(0, StreamKind.AUDIO)
        assert pad.label == "0:a"
        assert pad.kind == StreamKind.AUDIO

    def test_link_pad_map_spec(self):
        graph = FilterGraph()
        out = graph.add("null", [FilterGraph.input(0)], "out")
        assert not out.is_input
        assert out.map_spec() == "[out]"


class TestFilterGraph:
    def test_render_chain(self):
        graph = FilterGraph()
        scaled = graph.add("scale=640:360", [FilterGraph.input(1)], "scaled")
        out = graph.add("overlay=x=0:y=0", [FilterGraph.input(0), scaled], "out")
        graph.mark_output(out)

        assert graph.render() == (
            "[1:v]scale=640:360[scaled];[0:v][scaled]overlay=x=0:y=0[out]"
        )
        graph.validate()

    def test_empty_graph_is_falsy(self):
        graph = FilterGraph()
        assert not graph
        assert graph.render() == ""

    def test_multi_output(self):
        graph = FilterGraph()
        left, right = graph.add_multi("split", [FilterGraph.input(0)], ["l", "r"])
        out = graph.add("hstack=inputs=2", [left, right], "out")
        graph.mark_output(out)

        assert graph.render() == "[0:v]split[l][r];[l][r]hstack=inputs=2[out]"
        assert graph.producer("r").name == "split"
        assert [n.name for n in graph.consumers(left)] == ["hstack"]
        graph.validate()

    def test_node_name(self):
        graph = FilterGraph()
        graph.add("format=rgba,colorchannelmixer=aa=0.5", [FilterGraph.input(1)], "o")
        assert graph.nodes[0].name == "format"

    def test_audio_kind_follows_inputs(self):
        graph = FilterGraph()
        out = graph.add("volume=0.5", [FilterGraph.input(1, StreamKind.AUDIO)], "vol")
        assert out.kind == StreamKind.AUDIO
        assert graph.nodes[0].kind == StreamKind.AUDIO

    def test_mixed_kinds_rejected(self):
        graph = FilterGraph()
        with pytest.raises(GraphError):
            graph.add(
                "amix=inputs=2",
                [FilterGraph.input(1, StreamKind.AUDIO), FilterGraph.input(2)],
                "mix",
            )

    def test_duplicate_label_rejected(self):
        graph = FilterGraph()
        graph.add("null", [FilterGraph.input(0)], "a")
        with pytest.raises(GraphError):
            graph.add("null", [FilterGraph.input(1)], "a")

    def test_unknown_label_rejected(self):
        graph = FilterGraph()
        dangling = FilterGraph().add("null", [FilterGraph.input(0)], "elsewhere")
        with pytest.raises(GraphError):
            graph.add("null", [dangling], "b")

    def test_no_inputs_rejected(self):
        with pytest.raises(GraphError):
            FilterGraph().add("color", [], "c")

    def test_unconsumed_label_fails_validation(self):
        graph = FilterGraph()
        graph.add("null", [FilterGraph.input(0)], "lost")
        with pytest.raises(GraphError):
            graph.validate()

    def test_double_consumption_fails_validation(self):
        graph = FilterGraph()
        once = graph.add("null", [FilterGraph.input(0)], "once")
        graph.add("null", [once], "a")
        graph.add("null", [once], "b")
        with pytest.raises(GraphError):
            graph.validate()

    def test_inputs_may_be_reused(self):
        graph = FilterGraph()
        top = graph.add("crop=iw:ih/2:0:0", [FilterGraph.input(1)], "top")
        bottom = graph.add("crop=iw:ih/2:0:ih/2", [FilterGraph.input(1)], "bottom")
        graph.mark_output(graph.add("alphamerge", [top, bottom], "out"))
        graph.validate()
