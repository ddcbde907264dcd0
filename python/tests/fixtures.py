"""Archive page fixtures.

Provides realistic HTML for the pages the reader fetches:
- Login form and homepage
- Chapter pages (with chapter picker, with link list, without chapter list)
- Comment threads

Note:
- Markup follows the archive's own class and id names
- Each chapter body is a single div with no nested divs
"""

ARCHIVE = "https://archiveofourown.org"

WORK_URL = f"{ARCHIVE}/works/1"
CHAPTER_ONE_URL = f"{ARCHIVE}/works/1/chapters/101"
CHAPTER_TWO_URL = f"{ARCHIVE}/works/1/chapters/102"
CHAPTER_THREE_URL = f"{ARCHIVE}/works/1/chapters/103"

# =============================================================================
# Session Pages
# =============================================================================

LOGIN_PAGE_HTML = """
<html><body>
<form id="new_user" action="/users/login" method="post">
<input type="hidden" name="authenticity_token" value="tok-abc-123" autocomplete="off" />
<input type="text" name="user[login]" id="user_login" />
<input type="password" name="user[password]" id="user_password" />
</form>
</body></html>
"""

LOGIN_PAGE_WITHOUT_TOKEN_HTML = """
<html><body><form id="new_user" action="/users/login" method="post"></form></body></html>
"""

HOMEPAGE_HTML = """
<html><body>
<ul class="primary navigation actions">
<li class="dropdown"><a href="/users/jane_doe">Hi, jane_doe!</a>
<ul class="menu"><li><a href="/users/jane_doe/works">My Works</a></li></ul>
</li>
<li><a href="/users/logout">Log Out</a></li>
</ul>
</body></html>
"""

LOGGED_OUT_HOMEPAGE_HTML = """
<html><body>
<p class="user"><a href="/users/login">Log In</a> <a href="/users/new">Sign Up</a></p>
</body></html>
"""

# =============================================================================
# Chapter Pages
# =============================================================================

CHAPTER_ONE_BODY = (
    '<h3 class="landmark heading">Chapter Text</h3>\n'
    "<p>The rain had not stopped in three days.</p>\n"
    "<p></p>\n"
    '<p class="indent">She opened the door &amp; <em>waited</em>.</p>\n'
)

CHAPTER_ONE_HTML = f"""
<html><head><title>The Long Rain - Chapter 1 - Archive of Our Own</title></head>
<body>
<h2 class="title heading">The Long Rain</h2>
<form action="/works/1/chapters" method="get">
<select id="selected_id" name="selected_id">
<option selected="selected" value="101">1. Beginnings</option>
<option value="102">2. Middles</option>
<option value="103">3. Ends</option>
</select>
</form>
<div class="userstuff module" role="article">{CHAPTER_ONE_BODY}</div>
</body></html>
"""

CHAPTER_TWO_HTML = """
<html><head><title>The Long Rain - Chapter 2 - Archive of Our Own</title></head>
<body>
<h2 class="title heading">The Long Rain</h2>
<select id="selected_id" name="selected_id">
<option value="101">1. Beginnings</option>
<option selected="selected" value="102">2. Middles</option>
<option value="103">3. Ends</option>
</select>
<div class="userstuff module" role="article"><p>Morning came grey.</p></div>
</body></html>
"""

# Chapter list rendered as links instead of a picker, with a duplicate entry.
CHAPTER_INDEX_HTML = """
<html><head><title>Index</title></head>
<body>
<h2 class="title heading">Link Work</h2>
<ol class="chapter index group">
<li><a href="/works/7/chapters/701">Chapter 1</a></li>
<li><a href="/works/7/chapters/702">Chapter 2</a></li>
<li><a href="/works/7/chapters/701">Chapter 1 again</a></li>
</ol>
<h3 class="title">Chapter 1: Arrival</h3>
<div id="chapters"><p>Only text.</p></div>
</body></html>
"""

# Single chapter page with no chapter list at all.
CHAPTER_WITHOUT_LIST_HTML = """
<html><head><title>The Long Rain - Chapter 3</title></head>
<body>
<h2 class="title heading">The Long Rain</h2>
<div class="userstuff module" role="article"><p>The end.</p></div>
</body></html>
"""

NO_BODY_HTML = """
<html><head><title>Adult Content Warning</title></head>
<body><p class="caution">This work could have adult content.</p></body></html>
"""

# =============================================================================
# Comment Pages
# =============================================================================

AVATAR_URL = f"{ARCHIVE}/rails/active_storage/blobs/abc/alice.png"


def comment_li(
    comment_id: str,
    body: str | None,
    *,
    user: str | None = "alice",
    children: str = "",
    chapter_link: bool = True,
    posted: str = "Mon 01 Jan 2024 10:00AM UTC",
    avatar: bool = False,
) -> str:
    """Render one comment element, optionally with a nested reply thread."""
    parts = [f'<li class="odd comment group" id="comment_{comment_id}" role="article">']
    if avatar:
        parts.append(f'<div class="icon"><a href="/users/{user}"><img src="{AVATAR_URL}" alt="" /></a></div>')
    heading = '<h4 class="heading byline">'
    if user:
        heading += f'<a href="/users/{user}/pseuds/{user}">{user}</a>'
    else:
        heading += "Guest"
    if chapter_link:
        heading += ' <span class="parent">on <a href="/works/1/chapters/101">Chapter 1</a></span>'
    heading += "</h4>"
    parts.append(heading)
    parts.append(f'<span class="posted datetime">{posted}</span>')
    if body is not None:
        parts.append(f'<blockquote class="userstuff"><p>{body}</p></blockquote>')
    if children:
        parts.append(f'<ol class="thread">{children}</ol>')
    parts.append("</li>")
    return "\n".join(parts)


def comments_page(*items: str) -> str:
    """Wrap comment elements the way a chapter page with comments shown does."""
    joined = "\n".join(items)
    return (
        '<html><body><div id="comments_placeholder">'
        f'<ol class="index">{joined}</ol>'
        "</div></body></html>"
    )


# One root (100) with one reply (101) in a thread nested inside it.
ROOT_WITH_REPLY_HTML = comments_page(
    comment_li("100", "Great chapter!", avatar=True, children=comment_li("101", "Thanks!", user="bob")),
)
