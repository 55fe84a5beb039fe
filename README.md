# articlesvc

A small article (blog post) service. It stores posts in an SQLite
database, validates what clients send, and serves everything as JSON
over HTTP. It uses only the Python standard library and needs
Python 3.10 or later.

Every post has a title (up to 200 characters), content, a category
(up to 100 characters) and a status: `Draft`, `Publish` or `Trash`.
Posts get a random UUID as their id when they are created. Dates in
responses are written as `DD Mon YYYY`, for example `05 Mar 2024`.

## Installing

```
pip install .
```

## Running the service

```
articlesvc --rpc 9090 --gateway 8080
```

The command may also be written as `articlesvc service ...`.

- `-g`/`--gateway` sets the HTTP address: a bare port number or a
  `host:port` address. Without it a free port is chosen.
- `-r`/`--rpc` must be given together with `--gateway` (both or
  neither); its value is accepted but not used.
- `--config` names the environment file to read (default `.env`).

The environment file holds `KEY=value` lines; blank lines and lines
starting with `#` are skipped, a leading `export` is allowed, values
may be quoted, and keys are upper-cased. An environment variable of
the same name wins over the file. The database location is read from
the `POSTGRES_DNS` key and is opened as an SQLite database (a file
path, or `:memory:`). The command exits with status 1 if the file
cannot be read, has a malformed line, or gives no database.

The service runs until it gets SIGINT or SIGTERM.

## HTTP API

| Method | Path | Call |
| --- | --- | --- |
| GET | `/api/v1/healthz` | health check |
| GET | `/api/v1/posts` | list posts with one status |
| GET | `/api/v1/posts/{id}` | fetch one post |
| GET | `/api/v1/internal/posts` | list posts of any status |
| POST | `/api/v1/internal/posts` | create a post |
| GET | `/api/v1/internal/posts/{id}` | fetch one post |
| PUT | `/api/v1/internal/posts/{id}` | update a post |
| DELETE | `/api/v1/internal/posts/{id}` | delete a post |

List calls take the query parameters `search` (matched against the
title), `page`, `itemPerPage` and, for `/api/v1/posts`, `status`
(default `0`, i.e. `Draft`). When `page` is above zero, results are
paged; lists are newest first. Statuses may be given as a number, a
label (`Publish`) or an enum name (`PUBLISH`).

Create and update take `title`, `content`, `category` and `status`,
as a JSON object or a form-encoded body. Successful calls answer with
an envelope of `code`, `status`, `message` and, for reads, `data`.

Requests with a body must send a `Content-Type` beginning with
`application/json` or `application/x-www-form-urlencoded`: a missing
one gets `400 Bad Request`, any other `415 Unsupported Media Type`.
Requests carrying an `Origin` header get it echoed back in
`Access-Control-Allow-Origin`, and CORS preflights are answered
directly. Paths outside `/api` get `404` unless an application has
been mounted with `Gateway.mount`.

Errors come back with a fixed JSON shape:

```json
{
  "code": 400,
  "status": "Bad Request",
  "message": "Invalid Argument",
  "errors": {"title": "Title wajib diisi"}
}
```

`errors` maps each field that failed validation to a description
(written in Indonesian). Unknown posts give `404`, an unexpected
failure gives `500` with the message `Unknown Server Error`, and a
known path with the wrong method gives `501`.

## Using it as a library

- `articlesvc.repository.connect` opens the database;
  `PostRepository` creates the table and stores and queries posts.
- `articlesvc.usecase.PostUseCase` turns stored posts into response
  data (`post_to_dict`).
- `articlesvc.handler.ArticleHandler` validates requests and builds
  the response envelopes.
- `articlesvc.validation.validate_request` checks `CreatePostRequest`
  and `UpdatePostRequest`, raising `articlesvc.errors.RpcError`.
- `articlesvc.interceptors.ServerInterceptor` provides recovery,
  metadata propagation, auth and timing wrappers, composed with
  `chain_interceptors`.
- `articlesvc.gateway.build_api`, `handler_mux` and `Gateway` serve a
  handler over HTTP as a WSGI application.
- `articlesvc.cli.build_application` wires all of these together.

## What it does not do

- There is no gRPC server or client; the service is reached only
  through the HTTP gateway, and `--rpc` has no effect.
- Storage is SQLite only; no PostgreSQL connection is made.
- No Swagger UI or static files are served.
- The auth hook lets every call through; restricted methods are not
  enforced.

## Running the tests

```
pip install .[test]
pytest
```