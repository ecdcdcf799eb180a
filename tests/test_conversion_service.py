import unittest
import os
import json
import shutil
import tempfile
import pysrt
from pathlib import Path

# Add parent directory to path to import the subconv modules
import sys
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from subconv.models.schema import SubtitleFormat
from subconv.services.conversion_service import (
    classify_style,
    convert_file,
    convert_tags_to_ass,
    convert_to_srt,
    custom_xml_to_srt,
    deep_unescape_html,
    detect_format,
    generate_output_name,
    json_to_srt,
    srt_to_ass,
    ttml_to_srt,
    vtt_to_srt,
    write_converted,
)
from subconv.utils.error_utils import SubtitleConversionError, UnsupportedFormatError

SAMPLE_VTT = """WEBVTT
Kind: captions
Language: en

1
00:00:01.000 --> 00:00:02.000 align:start position:0%
<v Alice>Hello</v> there

NOTE this block is ignored

00:03.500 --> 00:04.000
<c.#ff0000>red</c> &amp;amp; <00:00:03.700>done
"""

SAMPLE_TTML = """<?xml version="1.0" encoding="utf-8"?>
<tt xmlns="http://www.w3.org/ns/ttml" xmlns:tts="http://www.w3.org/ns/ttml#styling">
  <body>
    <div>
      <p begin="00:00:01.000" end="00:00:02.500">Hello<br/>World</p>
      <p begin="00:00:03:12" end="00:00:04:00"><span tts:fontStyle="italic">Frames</span></p>
      <p begin="5s" dur="1.5s">Offset &amp;amp; duration</p>
      <p begin="00:00:09.000" end="00:00:10.000">   </p>
    </div>
  </body>
</tt>
"""

SAMPLE_CUSTOM_XML = """<xml>
  <dia><st>100</st><et>250</et><sub>First line
second line</sub></dia>
  <dia><st>300</st><et>400</et><sub></sub></dia>
  <dia><st>500</st><et>600</et><sub>Last &amp;amp; final</sub></dia>
</xml>
"""

SAMPLE_SRT = """1
00:00:01,000 --> 00:00:04,000
Hello
World

2
00:00:05,000 --> 00:00:06,000
[DOOR SLAMS]

3
00:00:06,000 --> 00:00:07,000
<i>Same</i>

4
00:00:07,000 --> 00:00:08,000
<i>Same</i>
"""


class TestCaptionConverters(unittest.TestCase):
    def test_vtt_to_srt(self):
        srt = vtt_to_srt(SAMPLE_VTT)
        subs = pysrt.from_string(srt)

        self.assertEqual(len(subs), 2)
        self.assertEqual(subs[0].text, "Alice: Hello there")
        self.assertEqual(subs[0].end.ordinal, 2000)
        self.assertEqual(subs[1].start.ordinal, 3500)
        self.assertEqual(subs[1].text, '<font color="#ff0000">red</font> & done')

    def test_vtt_without_cues_raises(self):
        with self.assertRaises(SubtitleConversionError):
            vtt_to_srt("WEBVTT\n\nNOTE nothing here\n")

    def test_ttml_to_srt(self):
        subs = pysrt.from_string(ttml_to_srt(SAMPLE_TTML))

        self.assertEqual(len(subs), 3)
        self.assertEqual(subs[0].text, "Hello\nWorld")
        self.assertEqual(subs[0].end.ordinal, 2500)
        # 12 frames at 25 fps
        self.assertEqual(subs[1].start.ordinal, 3480)
        self.assertEqual(subs[1].text, "Frames")
        self.assertEqual((subs[2].start.ordinal, subs[2].end.ordinal), (5000, 6500))
        self.assertEqual(subs[2].text, "Offset & duration")

    def test_invalid_xml_raises(self):
        with self.assertRaises(SubtitleConversionError):
            ttml_to_srt("<tt><body><p>broken</body>")

    def test_custom_xml_to_srt(self):
        subs = pysrt.from_string(custom_xml_to_srt(SAMPLE_CUSTOM_XML))

        self.assertEqual(len(subs), 2)
        self.assertEqual((subs[0].start.ordinal, subs[0].end.ordinal), (1000, 2500))
        self.assertEqual(subs[0].text, "First line\\Nsecond line")
        self.assertEqual(subs[1].text, "Last & final")

    def test_custom_xml_rejects_other_documents(self):
        with self.assertRaises(SubtitleConversionError):
            custom_xml_to_srt(SAMPLE_TTML)

    def test_bilibili_json(self):
        data = {"body": [
            {"from": 1.5, "to": 3.0, "content": "Hi"},
            {"from": 4, "to": 4, "content": "zero length"},
            {"from": 5, "to": 6.25, "content": "Bye"},
        ]}
        subs = pysrt.from_string(json_to_srt(json.dumps(data)))

        self.assertEqual([sub.text for sub in subs], ["Hi", "Bye"])
        self.assertEqual((subs[0].start.ordinal, subs[0].end.ordinal), (1500, 3000))
        self.assertEqual(subs[1].end.ordinal, 6250)

    def test_json_with_invalid_timing_raises(self):
        with self.assertRaises(SubtitleConversionError):
            json_to_srt(json.dumps({"body": [{"from": "abc", "to": 1, "content": "x"}]}))
        with self.assertRaises(SubtitleConversionError):
            json_to_srt(json.dumps({"body": [{"from": 0, "to": "nan", "content": "x"}]}))
        with self.assertRaises(SubtitleConversionError):
            json_to_srt(json.dumps({"events": [{"tStartMs": [1], "dDurationMs": 5, "segs": [{"utf8": "x"}]}]}))

    def test_youtube_json_sorted(self):
        data = {"events": [
            {"tStartMs": 2000, "dDurationMs": 1000, "segs": [{"utf8": "Second"}]},
            {"tStartMs": 0, "dDurationMs": 1500, "segs": [{"utf8": "First"}]},
            {"tStartMs": 100},
            {"tStartMs": 200, "dDurationMs": 100, "segs": [{"utf8": "\n"}]},
        ]}
        subs = pysrt.from_string(json_to_srt(json.dumps(data)))

        self.assertEqual([sub.text for sub in subs], ["First", "Second"])
        self.assertEqual(subs[1].end.ordinal, 3000)

    def test_unknown_json_raises(self):
        with self.assertRaises(SubtitleConversionError):
            json_to_srt('{"captions": []}')
        with self.assertRaises(SubtitleConversionError):
            json_to_srt("not json")

    def test_deep_unescape(self):
        self.assertEqual(deep_unescape_html("a&amp;amp;lt;b&nbsp;c"), "a<b c")


class TestSrtToAss(unittest.TestCase):
    def test_convert_tags(self):
        self.assertEqual(convert_tags_to_ass('<font color="#FF8000">Hot</font>'), "{\\c&H0080FF&}Hot")
        self.assertEqual(convert_tags_to_ass("<b>bold</b>  <i>it</i>"), "{\\b1}bold{\\b0} {\\i1}it{\\i0}")
        self.assertEqual(convert_tags_to_ass("{\\fnArial}plain<span>x</span>"), "plainx")

    def test_classify_style(self):
        self.assertEqual(classify_style("[DOOR SLAMS]"), "Sign")
        self.assertEqual(classify_style("(whispering)"), "Sign")
        self.assertEqual(classify_style("EXIT"), "Sign")
        self.assertEqual(classify_style("{\\i1}Hello{\\i0}"), "Default")
        self.assertEqual(classify_style("..."), "Sign")
        self.assertEqual(classify_style("2024"), "Sign")
        self.assertEqual(classify_style("\u3053\u3093\u306b\u3061\u306f\u3001\u5143\u6c17\u3067\u3059\u304b"), "Default")
        self.assertEqual(classify_style("OK, fine"), "Default")
        self.assertEqual(classify_style(""), "Default")

    def test_srt_to_ass(self):
        ass = srt_to_ass(SAMPLE_SRT)
        lines = ass.split("\n")
        dialogues = [line for line in lines if line.startswith("Dialogue:")]

        self.assertIn("PlayResX: 1920", lines)
        self.assertIn("PlayResY: 1080", lines)
        self.assertIn(
            "Style: res,Basic Comical NC,1080,&H00FFFFFF,&H000000FF,&H00000000,&H00000000,"
            "0,0,0,0,0,0,0,0,1,2,2,2,10,10,10,1",
            lines
        )
        self.assertEqual(dialogues, [
            "Dialogue: 0,0:00:05.00,0:00:06.00,Sign,,0000,0000,0000,,[DOOR SLAMS]",
            "Dialogue: 0,0:00:01.00,0:00:04.00,Default,,0000,0000,0000,,{\\blur3}{\\fad(00,40)}Hello\\NWorld",
            "Dialogue: 0,0:00:06.00,0:00:08.00,Default,,0000,0000,0000,,{\\blur3}{\\fad(00,40)}{\\i1}Same{\\i0}",
        ])
        self.assertTrue(ass.endswith("\n"))

    def test_empty_srt_raises(self):
        with self.assertRaises(SubtitleConversionError):
            srt_to_ass("")


class TestFileConversion(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def _write(self, name, text):
        path = os.path.join(self.temp_dir, name)
        with open(path, "w", encoding="utf-8") as f:
            f.write(text)
        return path

    def test_detect_format(self):
        self.assertEqual(detect_format("movie.SRT"), SubtitleFormat.SRT)
        self.assertEqual(detect_format("movie.ttml"), SubtitleFormat.TTML)
        with self.assertRaises(UnsupportedFormatError):
            detect_format("movie.txt")

    def test_convert_vtt_file(self):
        ass = convert_file(self._write("episode.vtt", SAMPLE_VTT))
        self.assertIn("Alice: Hello there", ass)
        self.assertIn("[Script Info]", ass)

    def test_xml_extension_falls_back_to_ttml(self):
        srt = convert_to_srt(self._write("episode.xml", SAMPLE_TTML))
        self.assertIn("Hello\nWorld", srt)

    def test_convert_ass_file_resamples(self):
        source = "[Script Info]\nPlayResX: 1280\nPlayResY: 720\n\n[Events]\n" \
                 "Format: Layer, Start, End, Style, Text\nDialogue: 0,0:00:01.00,0:00:02.00,Default,{\\pos(10,10)}Hi\n"
        ass = convert_file(self._write("episode.ass", source))
        self.assertIn("{\\pos(15,15)}Hi", ass)
        self.assertIn("PlayResX: 1920", ass)

    def test_unsupported_file_raises(self):
        with self.assertRaises(UnsupportedFormatError):
            convert_file(self._write("notes.txt", "hello"))

    def test_output_name_avoids_existing_files(self):
        source = self._write("movie.srt", SAMPLE_SRT)
        first = generate_output_name(source)
        self.assertEqual(first.name, "movie_converted.ass")

        write_converted(source, "content\n")
        second = generate_output_name(source)
        self.assertEqual(second.name, "movie_converted(1).ass")

    def test_write_converted_keeps_line_endings(self):
        source = self._write("movie.srt", SAMPLE_SRT)
        target = write_converted(source, "a\r\nb\r\n", os.path.join(self.temp_dir, "out", "custom.ass"))

        self.assertEqual(target.read_bytes(), b"a\r\nb\r\n")


if __name__ == '__main__':
    unittest.main()
