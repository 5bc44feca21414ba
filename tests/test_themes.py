"""Темы месяца, списки работ и пагинация."""

from extensions import db
from models import Category
from utils.catalog import paginate, split_themes, theme_for_month, themes_newest_first


class TestThemes:
    def test_latest_theme_is_current(self, app, make_theme):
        make_theme("A", 2023, 1)
        make_theme("B", 2023, 2)

        with app.app_context():
            current, past = split_themes(themes_newest_first())
            assert current.title == "B"
            assert [theme.title for theme in past] == ["A"]

    def test_themes_page_lists_current_and_past(self, client, make_theme):
        make_theme("A", 2023, 1)
        make_theme("B", 2023, 2)

        body = client.get("/themes").get_data(as_text=True)
        assert body.index("現在のお題") < body.index("「B」") < body.index("過去のお題") < body.index("「A」")

    def test_year_outranks_month(self, app, make_theme):
        make_theme("旧", 2022, 12)
        make_theme("新", 2023, 1)
        with app.app_context():
            assert themes_newest_first()[0].title == "新"

    def test_no_theme_message(self, client):
        assert "現在のお題はまだ設定されていません。" in client.get("/").get_data(as_text=True)
        assert "現在のお題はまだ設定されていません。" in client.get("/themes").get_data(as_text=True)

    def test_theme_for_month(self, app, make_theme):
        make_theme("春", 2024, 4)
        with app.app_context():
            assert theme_for_month(2024, 4).title == "春"
            assert theme_for_month(2024, 5) is None

    def test_theme_detail_lists_its_artworks(self, client, make_user, make_theme, make_artwork):
        theme_id = make_theme("月", 2024, 9)
        author_id = make_user()
        make_artwork(author_id, title="満月", theme_id=theme_id)
        make_artwork(author_id, title="無関係")

        body = client.get(f"/themes/{theme_id}").get_data(as_text=True)
        assert "満月" in body
        assert "無関係" not in body


class TestArtworkListing:
    def test_category_filter(self, app, client, make_user, make_artwork):
        with app.app_context():
            other = Category(name="かな")
            db.session.add(other)
            db.session.commit()
            other_id = other.id

        author_id = make_user()
        make_artwork(author_id, title="楷書の作品")
        make_artwork(author_id, title="かなの作品", category_id=other_id)

        body = client.get(f"/artworks?category={other_id}").get_data(as_text=True)
        assert "かなの作品" in body
        assert "楷書の作品" not in body

    def test_pages_are_split(self, app, client, make_user, make_artwork):
        app.config["ARTWORKS_PER_PAGE"] = 2
        author_id = make_user()
        for index in range(5):
            make_artwork(author_id, title=f"作品{index}")

        body = client.get("/artworks?page=3").get_data(as_text=True)
        assert "作品0" in body
        assert "作品4" not in body
        assert '<span class="current">3</span>' in body

    def test_empty_listing(self, client):
        assert "作品がまだありません。" in client.get("/artworks").get_data(as_text=True)


class TestPaginate:
    def test_offsets(self):
        page = paginate(25, 3, 12)
        assert (page.page, page.total_pages, page.offset) == (3, 3, 24)
        assert page.has_prev and not page.has_next

    def test_out_of_range_page_is_clamped(self):
        assert paginate(25, 99, 12).page == 3
        assert paginate(25, -1, 12).page == 1

    def test_no_items(self):
        page = paginate(0, 1, 12)
        assert (page.page, page.total_pages, list(page.pages)) == (1, 0, [])
