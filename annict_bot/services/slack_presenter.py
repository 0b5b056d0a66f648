"""
Slack presentation

Renders aggregated programs as Slack Block Kit blocks and errors as plain text.
"""
from collections.abc import Sequence
from datetime import datetime

from slack_sdk.models.blocks import (
    Block,
    DividerBlock,
    HeaderBlock,
    ImageBlock,
    MarkdownTextObject,
    PlainTextObject,
    SectionBlock,
)

from annict_bot.models import Program
from annict_bot.utils.timezone import format_date, format_time


TODAY_HEADER = ":calendar: {date} 放送予定のアニメ"
TODAY_EMPTY = "本日の放送予定は見つかりませんでした。"
UNWATCHED_HEADER = ":eyes: 未視聴のアニメ"
UNWATCHED_EMPTY = "未視聴のアニメは見つかりませんでした。"
UNSCHEDULED = "日時未定"
ERROR_TEMPLATE = ":warning: エラーが発生しました:\n```{error}```"

DEFAULT_LIMIT_NUM_TO_DISPLAY = 5


class SlackProgramPresenter:
    """Formats domain programs into Slack blocks."""

    def __init__(self, limit_num_to_display: int = DEFAULT_LIMIT_NUM_TO_DISPLAY) -> None:
        self.limit_num_to_display = limit_num_to_display

    def format_combined_programs(
        self,
        today_programs: Sequence[Program],
        library_entries: Sequence[Program],
        reference_date: datetime
    ) -> list[Block]:
        """
        Build the full notification message.

        Args:
            today_programs: Programs airing on the reference date
            library_entries: Unwatched library entries, already ordered
            reference_date: Date shown in the first header

        Returns:
            Ordered list of blocks: today header, today list, divider,
            unwatched header, unwatched list
        """
        blocks: list[Block] = [_header(TODAY_HEADER.format(date=format_date(reference_date)))]

        if today_programs:
            blocks.extend(self.format_program_list(today_programs))
        else:
            blocks.append(_section(TODAY_EMPTY))

        blocks.append(DividerBlock())
        blocks.append(_header(UNWATCHED_HEADER))

        if library_entries:
            blocks.extend(self.format_program_list(library_entries[:self.limit_num_to_display]))
        else:
            blocks.append(_section(UNWATCHED_EMPTY))

        return blocks

    def format_program_list(self, programs: Sequence[Program]) -> list[Block]:
        blocks: list[Block] = []
        for program in programs:
            blocks.append(_section(format_program_text(program)))
            if program.work.image_url:
                blocks.append(
                    ImageBlock(
                        image_url=program.work.image_url,
                        alt_text=f"{program.work.title} image",
                    )
                )
        return blocks

    def format_error(self, err: BaseException) -> str:
        return ERROR_TEMPLATE.format(error=err)


def format_program_text(program: Program) -> str:
    """mrkdwn body for a single program: title, episode and broadcast lines."""
    work = program.work
    if work.official_site_url:
        title = f"<{work.official_site_url}|{work.title}>"
    else:
        title = f"*{work.title}*"

    episode_line = f" • {program.episode.number_text}"
    if program.episode.title:
        episode_line += f" 「{program.episode.title}」"

    if program.start_time is not None:
        air_date_time = f"{format_date(program.start_time)} {format_time(program.start_time)}"
    else:
        air_date_time = UNSCHEDULED

    return "\n".join([
        title,
        episode_line,
        f" • :tv: {program.channel.name} {air_date_time}",
    ])


def _header(text: str) -> HeaderBlock:
    return HeaderBlock(text=PlainTextObject(text=text, emoji=True))


def _section(text: str) -> SectionBlock:
    return SectionBlock(text=MarkdownTextObject(text=text))
